import argparse
import os
import sys

import deployment_options
import domain_configurator
import errors
import utils

SOURCE_NAMESPACE = "openshift-ingress"
SOURCE_SECRET = "cert-manager-ingress-cert"
TARGET_NAMESPACE = "demo-project"
TARGET_SECRET = "my-tls-secret"

LISTED_NAMESPACES = ("openshift-ingress", "openshift-ingress-operator")

log = utils.get_logger('populate-keycloak-certs')


def handle_arguments(args=None):
    parser = argparse.ArgumentParser(
        description="Populate the Keycloak TLS secret manifest with the OpenShift ingress certificate")
    parser.add_argument('-l', '--list', help='List available TLS certificates', action='store_true')
    parser.add_argument('-n', '--namespace', help='Source namespace', default=SOURCE_NAMESPACE)
    parser.add_argument('-s', '--secret', help='Source secret name', default=SOURCE_SECRET)
    parser.add_argument('-t', '--target-ns', help='Target namespace', default=TARGET_NAMESPACE)
    parser.add_argument('-r', '--target-secret', help='Target secret name', default=TARGET_SECRET)
    return deployment_options.load_deployment_options(parser, args)


def list_certificates():
    tls_selector = '--field-selector type=kubernetes.io/tls'
    for namespace in LISTED_NAMESPACES:
        print(f"=== {namespace} namespace ===")
        print(utils.check_output(f"{utils.get_oc_command(namespace)} get secrets {tls_selector}", raise_on_error=False)
              or "No TLS secrets found or no access")
        print()

    current = utils.check_output(f"{utils.get_oc_command()} project -q", raise_on_error=False) or "default"
    print(f"=== Current namespace ({current}) ===")
    print(utils.check_output(f"{utils.get_oc_command()} get secrets {tls_selector}", raise_on_error=False)
          or "No TLS secrets found")


def extract_certificate(namespace, secret):
    """Return the base64 encoded (tls.crt, tls.key) pair stored in a cluster secret."""
    log.info("Extracting certificate from secret '%s' in namespace '%s'", secret, namespace)

    if not utils.check_if_exists('secret', secret, namespace=namespace):
        raise errors.CertificateExtractionError(
            f"Secret '{secret}' not found in namespace '{namespace}'. "
            "Try using --list to see available certificates.")

    tls_crt = utils.get_jsonpath('secret', secret, r'{.data.tls\.crt}', namespace=namespace)
    tls_key = utils.get_jsonpath('secret', secret, r'{.data.tls\.key}', namespace=namespace)
    if not tls_crt or not tls_key:
        raise errors.CertificateExtractionError(f"Failed to extract certificate data from secret '{secret}'")

    log.info("Successfully extracted certificate data")
    return tls_crt, tls_key


def render_secret(name, namespace, tls_crt, tls_key):
    return {
        'apiVersion': 'v1',
        'kind': 'Secret',
        'metadata': {
            'name': name,
            'namespace': namespace,
        },
        'type': 'kubernetes.io/tls',
        'data': {
            'tls.crt': tls_crt,
            'tls.key': tls_key,
        },
    }


def update_secret_file(secret_file, secret, backup=True, dry_run=False):
    if dry_run:
        log.info("Would update %s with secret '%s' in namespace '%s'",
                 secret_file, secret['metadata']['name'], secret['metadata']['namespace'])
        return None

    log.info("Updating %s with extracted certificates", secret_file)
    backup_path = None
    if backup and os.path.isfile(secret_file):
        backup_path = domain_configurator.create_backup(secret_file, log)

    utils.dump_yaml_file_docs(secret_file, [secret])
    log.info("Successfully updated %s", secret_file)
    return backup_path


def populate(secret_file, source_namespace=SOURCE_NAMESPACE, source_secret=SOURCE_SECRET,
             target_namespace=TARGET_NAMESPACE, target_secret=TARGET_SECRET, backup=True, dry_run=False):
    tls_crt, tls_key = extract_certificate(source_namespace, source_secret)
    secret = render_secret(target_secret, target_namespace, tls_crt, tls_key)
    return update_secret_file(secret_file, secret, backup=backup, dry_run=dry_run)


def main(args=None):
    deploy_options = handle_arguments(args)
    utils.set_verbose(log, deploy_options.verbose)
    log.info("Starting certificate extraction")

    try:
        utils.verify_oc_login(log)
        if deploy_options.list:
            list_certificates()
            return 0
        populate(deployment_options.repo_path(deploy_options, deployment_options.KEYCLOAK_SECRET_FILE),
                 source_namespace=deploy_options.namespace,
                 source_secret=deploy_options.secret,
                 target_namespace=deploy_options.target_ns,
                 target_secret=deploy_options.target_secret,
                 backup=deploy_options.backup,
                 dry_run=deploy_options.dry_run)
    except (errors.DeploymentError, RuntimeError) as e:
        log.error("%s", e)
        return 1

    log.info("Updated secret will be named '%s' in namespace '%s'",
             deploy_options.target_secret, deploy_options.target_ns)
    return 0


if __name__ == "__main__":
    sys.exit(main())
