import argparse
import os


# Manifest layout, relative to the repository root
KEYCLOAK_DIR = 'keycloak'
RHDH_DIR = 'rhdh'

KEYCLOAK_SECRET_FILE = 'keycloak/keycloak/3-secret.yaml'
KEYCLOAK_INSTANCE_FILE = 'keycloak/keycloak/5-keycloak-instance.yaml'
KEYCLOAK_REALM_FILE = 'keycloak/keycloak/6-keycloak-realm.yaml'
APP_CONFIG_FILE = 'rhdh/rhdh/5-app-config-rhdh.yaml'
BACKSTAGE_FILE = 'rhdh/rhdh/6-backstage.yaml'

RHDH_CONFIG_FILES = {
    'app-config': APP_CONFIG_FILE,
    'backstage': BACKSTAGE_FILE,
}

KEYCLOAK_HOST_PREFIX = 'keycloak-rhdh-operator'
RHDH_HOST_PREFIX = 'rhdh'


def default_repo_root():
    return os.environ.get('RHDH_IDP_ROOT', os.getcwd())


def load_deployment_options(parser=None, args=None):
    if not parser:
        parser = argparse.ArgumentParser()

    parser.add_argument(
        '--repo-root',
        help='Repository root holding the keycloak/ and rhdh/ manifests',
        type=str,
        default=default_repo_root()
    )
    parser.add_argument(
        '-d', '--dry-run',
        help='Show what changes would be made without applying them',
        action='store_true',
        default=False
    )
    parser.add_argument(
        '-b', '--backup',
        help='Create backup files before making changes (default)',
        dest='backup',
        action='store_true',
        default=True
    )
    parser.add_argument(
        '--no-backup',
        help='Skip creating backup files',
        dest='backup',
        action='store_false'
    )
    parser.add_argument(
        '-v', '--verbose',
        help='Show detailed output',
        action='store_true',
        default=False
    )

    return parser.parse_args(args)


def repo_path(deploy_options, relative_path):
    return os.path.join(deploy_options.repo_root, relative_path)
