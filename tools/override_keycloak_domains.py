import argparse
import os
import sys

import deployment_options
import domain_configurator
import errors
import utils

log = utils.get_logger('override-keycloak-domains')

EPILOG = """examples:
  %(prog)s -k keycloak.example.com -r rhdh.example.com
  %(prog)s --auto-detect
  %(prog)s --keycloak-domain keycloak.mycompany.com --rhdh-domain rhdh.mycompany.com --dry-run
  %(prog)s -a -v
"""

KEYCLOAK_TOKEN = domain_configurator.host_token(deployment_options.KEYCLOAK_HOST_PREFIX)
RHDH_TOKEN = domain_configurator.host_token(deployment_options.RHDH_HOST_PREFIX)


def handle_arguments(args=None):
    parser = argparse.ArgumentParser(
        description="Override domain names in Keycloak configuration files",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument('-k', '--keycloak-domain', help='New Keycloak domain')
    parser.add_argument('-r', '--rhdh-domain', help='New RHDH domain')
    parser.add_argument(
        '-a', '--auto-detect',
        help='Auto-detect domains from OpenShift cluster',
        action='store_true',
        default=False
    )
    return deployment_options.load_deployment_options(parser, args)


def target_files(repo_root):
    return [
        os.path.join(repo_root, deployment_options.KEYCLOAK_INSTANCE_FILE),
        os.path.join(repo_root, deployment_options.KEYCLOAK_REALM_FILE),
    ]


def detect_domains(log=log):
    ingress_domain = domain_configurator.detect_ingress_domain(log)
    keycloak_domain = f"{deployment_options.KEYCLOAK_HOST_PREFIX}.{ingress_domain}"
    rhdh_domain = f"{deployment_options.RHDH_HOST_PREFIX}.{ingress_domain}"

    log.info("Auto-detected domains:")
    log.info("  Keycloak domain: %s", keycloak_domain)
    log.info("  RHDH domain: %s", rhdh_domain)
    return keycloak_domain, rhdh_domain


def resolve_domains(deploy_options):
    keycloak_domain, rhdh_domain = deploy_options.keycloak_domain, deploy_options.rhdh_domain
    if deploy_options.auto_detect:
        keycloak_domain, rhdh_domain = detect_domains()

    if not keycloak_domain or not rhdh_domain:
        raise errors.ValidationError(
            '',
            'Keycloak' if not keycloak_domain else 'RHDH',
            reason='missing value (both Keycloak and RHDH domains are required)')

    domain_configurator.validate_domain(keycloak_domain, 'Keycloak')
    domain_configurator.validate_domain(rhdh_domain, 'RHDH')
    return keycloak_domain, rhdh_domain


def show_changes(substitutions):
    log.info("Changes that would be made:")
    for token, value in substitutions.items():
        log.info("  https://%s -> https://%s", token, value)


def override(paths, keycloak_domain, rhdh_domain, backup=True, dry_run=False, verbose=False):
    substitutions = {
        KEYCLOAK_TOKEN: keycloak_domain,
        RHDH_TOKEN: rhdh_domain,
    }

    if dry_run or verbose:
        show_changes(substitutions)

    results = domain_configurator.configure_files(
        paths,
        substitutions,
        backup=backup,
        dry_run=dry_run,
        log=log,
    )

    if dry_run:
        log.info("Dry run completed. No changes were made.")
    elif all(result.status == domain_configurator.SKIPPED for result in results):
        log.warning("Keycloak files are already configured. No changes needed.")
    else:
        log.debug("Updated domains: Keycloak=%s RHDH=%s", keycloak_domain, rhdh_domain)
    return results


def main(args=None):
    deploy_options = handle_arguments(args)
    utils.set_verbose(log, deploy_options.verbose)
    log.info("Starting domain override")

    try:
        keycloak_domain, rhdh_domain = resolve_domains(deploy_options)
        override(target_files(deploy_options.repo_root), keycloak_domain, rhdh_domain,
                 backup=deploy_options.backup, dry_run=deploy_options.dry_run, verbose=deploy_options.verbose)
    except (errors.DeploymentError, RuntimeError) as e:
        log.error("%s", e)
        return 1

    if not deploy_options.dry_run:
        log.info("Domain override completed! You can now run 'kustomize build %s' to verify the changes.",
                 deployment_options.KEYCLOAK_DIR)
    return 0


if __name__ == "__main__":
    sys.exit(main())
