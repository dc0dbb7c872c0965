#!/usr/bin/env python3
import argparse
import os
import sys

import create_htpasswd_user
import deployment_options
import domain_configurator
import errors
import override_keycloak_domains
import populate_keycloak_certs
import populate_rhdh_configs
import utils

log = utils.get_logger('bootstrap')

KEYCLOAK_CRD = "keycloaks.k8s.keycloak.org"
BACKSTAGE_CRD = "backstages.backstage.io"

# (manifest, description, CRD that must exist before the next step)
KEYCLOAK_STEPS = [
    ("keycloak/keycloak/1-namespace.yaml", "Creating the 'demo-project' namespace for Keycloak...", None),
    ("keycloak/keycloak/2-keycloak-operator.yaml", "Subscribing to the Keycloak operator...", KEYCLOAK_CRD),
    ("keycloak/keycloak/3-secret.yaml", "Creating the TLS secret for Keycloak...", None),
    ("keycloak/keycloak/4-Keycloak-postgresSQL.yaml", "Deploying the PostgreSQL database for Keycloak...", None),
    ("keycloak/keycloak/5-keycloak-instance.yaml", "Creating the Keycloak instance...", None),
    ("keycloak/keycloak/6-keycloak-realm.yaml", "Configuring the Keycloak realm...", None),
]

RHDH_STEPS = [
    ("rhdh/rhdh/1-namespace.yaml", "Creating the 'rhdh' namespace...", None),
    ("rhdh/rhdh/2-OperatorGroup.yaml", "Creating the OperatorGroup for RHDH...", None),
    ("rhdh/rhdh/3-Subscription.yaml", "Subscribing to the Red Hat Developer Hub operator...", BACKSTAGE_CRD),
    ("rhdh/rhdh/3-5-ServiceAccount.yaml", "Creating the ServiceAccount for RHDH...", None),
    ("rhdh/rhdh/4-Secret.yaml", "Creating the secret for RHDH...", None),
    ("rhdh/rhdh/5-app-config-rhdh.yaml", "Applying the main app configuration for RHDH...", None),
    ("rhdh/rhdh/5-dynamic-plugins.yaml", "Configuring dynamic plugins...", None),
    ("rhdh/rhdh/6-backstage.yaml", "Creating the Backstage instance...", None),
]


def handle_arguments(args=None):
    parser = argparse.ArgumentParser(description="Bootstrap Keycloak and Red Hat Developer Hub on OpenShift")
    parser.add_argument(
        '--advanced',
        help='Deploy with kustomize in one batch instead of the guided, step by step mode',
        action='store_true'
    )
    domains = parser.add_mutually_exclusive_group()
    domains.add_argument(
        '-a', '--auto-detect',
        help='Auto-detect the cluster domain (default unless --cluster-domain is given)',
        action='store_true'
    )
    domains.add_argument('-c', '--cluster-domain', help='Cluster domain, e.g. apps.mycluster.example.com')
    parser.add_argument('-k', '--keycloak-domain', help='Override the Keycloak hostname')
    parser.add_argument('-r', '--rhdh-domain', help='Override the RHDH hostname')
    parser.add_argument('-y', '--yes', help='Do not prompt before each step', action='store_true')
    parser.add_argument('--keep-backups', help='Keep manifest backup files after deploying', action='store_true')
    parser.add_argument('--skip-admin-user', help='Do not create the htpasswd admin user', action='store_true')
    return deployment_options.load_deployment_options(parser, args)


def resolve_domains(deploy_options):
    """Return (cluster suffix, keycloak host, rhdh host), querying the cluster at most once."""
    if deploy_options.cluster_domain:
        ingress_domain = deploy_options.cluster_domain
        if not ingress_domain.startswith(domain_configurator.INGRESS_PREFIX):
            ingress_domain = domain_configurator.INGRESS_PREFIX + ingress_domain
    else:
        ingress_domain = domain_configurator.detect_ingress_domain(log)

    cluster_suffix = domain_configurator.strip_prefix(ingress_domain)
    keycloak_domain = deploy_options.keycloak_domain or f"{deployment_options.KEYCLOAK_HOST_PREFIX}.{ingress_domain}"
    rhdh_domain = deploy_options.rhdh_domain or f"{deployment_options.RHDH_HOST_PREFIX}.{ingress_domain}"

    domain_configurator.validate_domain(cluster_suffix)
    domain_configurator.validate_domain(keycloak_domain, 'Keycloak')
    domain_configurator.validate_domain(rhdh_domain, 'RHDH')
    return cluster_suffix, keycloak_domain, rhdh_domain


def configure_environment(deploy_options):
    cluster_suffix, keycloak_domain, rhdh_domain = resolve_domains(deploy_options)
    root = deploy_options.repo_root

    populate_rhdh_configs.populate(
        populate_rhdh_configs.target_files(root),
        cluster_suffix,
        keycloak_domain=keycloak_domain,
        rhdh_domain=rhdh_domain,
        backup=deploy_options.backup,
        dry_run=deploy_options.dry_run)
    populate_keycloak_certs.populate(
        os.path.join(root, deployment_options.KEYCLOAK_SECRET_FILE),
        backup=deploy_options.backup,
        dry_run=deploy_options.dry_run)
    override_keycloak_domains.override(
        override_keycloak_domains.target_files(root),
        keycloak_domain,
        rhdh_domain,
        backup=deploy_options.backup,
        dry_run=deploy_options.dry_run,
        verbose=deploy_options.verbose)
    log.info("Configuration completed.")


def apply_with_prompt(file_path, description, deploy_options):
    log.info(description)
    if deploy_options.dry_run:
        log.info("Would apply %s", file_path)
        return
    if not deploy_options.yes:
        input("Press [Enter] to apply this step...")
    utils.apply(os.path.join(deploy_options.repo_root, file_path))


def run_steps(steps, deploy_options):
    for file_path, description, crd in steps:
        apply_with_prompt(file_path, description, deploy_options)
        if crd and not deploy_options.dry_run:
            utils.wait_for_crd(crd, log)


def run_guided_deployment(deploy_options):
    log.info("Starting guided deployment (Beginner Mode)...")
    log.info("--- Deploying Keycloak ---")
    run_steps(KEYCLOAK_STEPS, deploy_options)
    log.info("--- Deploying RHDH ---")
    run_steps(RHDH_STEPS, deploy_options)


def run_advanced_deployment(deploy_options):
    log.info("Starting advanced deployment (Kustomize Mode)...")
    utils.verify_tools(utils.KUSTOMIZE_CMD)

    for directory in (deployment_options.KEYCLOAK_DIR, deployment_options.RHDH_DIR):
        log.info("Deploying %s with Kustomize...", directory)
        if deploy_options.dry_run:
            log.info("Would run: kustomize build %s | oc apply -f -", directory)
            continue
        utils.apply_kustomize(os.path.join(deploy_options.repo_root, directory))


def cleanup(deploy_options):
    log.info("--- Cleaning up backup files ---")
    if deploy_options.keep_backups or deploy_options.dry_run:
        log.info("Keeping backup files")
        return []
    if not utils.confirm("Did the deployment succeed? Backup files will be deleted", deploy_options.yes):
        log.info("Keeping backup files")
        return []
    return domain_configurator.remove_backups(deploy_options.repo_root, log=log)


def bootstrap(deploy_options):
    log.info("--- Step 1: Verifying OpenShift login ---")
    utils.verify_oc_login(log)

    log.info("--- Step 2: Creating htpasswd admin user ---")
    if deploy_options.skip_admin_user or deploy_options.dry_run:
        log.info("Skipping admin user creation")
    else:
        create_htpasswd_user.create_admin_user()

    log.info("--- Step 3: Configuring environment ---")
    configure_environment(deploy_options)

    log.info("--- Step 4: Deploying Keycloak and RHDH ---")
    if deploy_options.advanced:
        run_advanced_deployment(deploy_options)
    else:
        run_guided_deployment(deploy_options)

    log.info("--- Step 5: Cleanup ---")
    cleanup(deploy_options)


def main(args=None):
    deploy_options = handle_arguments(args)
    utils.set_verbose(log, deploy_options.verbose)
    log.info("Starting the bootstrap process...")

    try:
        bootstrap(deploy_options)
    except (errors.DeploymentError, RuntimeError) as e:
        log.error("%s", e)
        return 1

    log.info("Bootstrap process completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
