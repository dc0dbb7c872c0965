import argparse
import os
import sys

import deployment_options
import domain_configurator
import errors
import utils

log = utils.get_logger('populate-rhdh-configs')


def handle_arguments(args=None):
    parser = argparse.ArgumentParser(
        description=f"Replace {domain_configurator.CLUSTER_PLACEHOLDER} in the RHDH manifests "
                    "with the current OpenShift cluster domain")
    parser.add_argument(
        '--only',
        help='Update a single RHDH configuration file',
        choices=sorted(deployment_options.RHDH_CONFIG_FILES)
    )
    return deployment_options.load_deployment_options(parser, args)


def target_files(repo_root, only=None):
    names = [only] if only else list(deployment_options.RHDH_CONFIG_FILES)
    return [os.path.join(repo_root, deployment_options.RHDH_CONFIG_FILES[name]) for name in names]


def substitutions_for(cluster_suffix, keycloak_domain=None, rhdh_domain=None):
    """Map each RHDH manifest token to its value.

    Host overrides replace the full ``<prefix>.apps.<placeholder>`` host so
    that RHDH points at the same Keycloak and base URL the realm is
    configured with. The bare placeholder covers everything else.
    """
    substitutions = {domain_configurator.CLUSTER_PLACEHOLDER: cluster_suffix}
    if keycloak_domain:
        substitutions[domain_configurator.host_token(deployment_options.KEYCLOAK_HOST_PREFIX)] = keycloak_domain
    if rhdh_domain:
        substitutions[domain_configurator.host_token(deployment_options.RHDH_HOST_PREFIX)] = rhdh_domain
    return substitutions


def populate(paths, cluster_suffix=None, keycloak_domain=None, rhdh_domain=None, backup=True, dry_run=False):
    if cluster_suffix is None:
        cluster_suffix = domain_configurator.detect_cluster_suffix(log)

    results = domain_configurator.configure_files(
        paths,
        substitutions_for(cluster_suffix, keycloak_domain, rhdh_domain),
        backup=backup,
        dry_run=dry_run,
        log=log,
    )

    if any(result.status == domain_configurator.UPDATED for result in results):
        log.info("Replaced all occurrences of %s with %s", domain_configurator.CLUSTER_PLACEHOLDER, cluster_suffix)
    return results


def main(args=None):
    deploy_options = handle_arguments(args)
    utils.set_verbose(log, deploy_options.verbose)

    try:
        populate(target_files(deploy_options.repo_root, deploy_options.only),
                 backup=deploy_options.backup, dry_run=deploy_options.dry_run)
    except (errors.DeploymentError, RuntimeError) as e:
        log.error("%s", e)
        return 1

    log.info("All RHDH configuration files have been processed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
