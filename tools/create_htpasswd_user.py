import argparse
import base64
import getpass
import json
import os
import shlex
import sys
import tempfile

import deployment_options
import errors
import utils

HTPASSWD_CMD = "htpasswd"
HTPASSWD_PROVIDER_NAME = "htpasswd-provider"
HTPASSWD_SECRET_NAME = "htpasswd-secret"
OAUTH_NAMESPACE = "openshift-config"
CLUSTER_ADMIN_GROUP = "cluster-admins"

log = utils.get_logger('create-htpasswd-user')


def handle_arguments(args=None):
    parser = argparse.ArgumentParser(description="Create or update an htpasswd cluster admin user")
    parser.add_argument('-u', '--username', help='Admin username (prompted when omitted)')
    return deployment_options.load_deployment_options(parser, args)


def get_user_credentials(username=None):
    while not username:
        username = input("Enter admin username: ").strip()
        if not username:
            log.error("Username cannot be empty. Please try again.")

    while True:
        password = getpass.getpass("Enter admin password: ")
        if not password:
            log.error("Password cannot be empty. Please try again.")
            continue
        confirmation = getpass.getpass("Confirm admin password: ")
        if password == confirmation:
            return username, password
        log.error("Passwords do not match. Please try again.")


def htpasswd(htpasswd_file, username, password, create=False):
    # -i: password is read from stdin, never passed on the command line
    create_flag = '-c ' if create else ''
    utils.check_output(f"{HTPASSWD_CMD} {create_flag}-B -i {shlex.quote(htpasswd_file)} {shlex.quote(username)}",
                       input=password)


def update_htpasswd_secret(username, password):
    log.info("Creating or updating the htpasswd secret in '%s'...", OAUTH_NAMESPACE)
    oc_cmd = utils.get_oc_command(OAUTH_NAMESPACE)

    with tempfile.TemporaryDirectory() as output_dir:
        htpasswd_file = os.path.join(output_dir, "htpasswd")

        if utils.check_if_exists("secret", HTPASSWD_SECRET_NAME, namespace=OAUTH_NAMESPACE):
            log.warning("Secret '%s' already exists. Adding/updating user '%s'.", HTPASSWD_SECRET_NAME, username)
            encoded = utils.get_jsonpath("secret", HTPASSWD_SECRET_NAME, "{.data.htpasswd}", namespace=OAUTH_NAMESPACE)
            with open(htpasswd_file, "wb") as f:
                f.write(base64.b64decode(encoded))

            htpasswd(htpasswd_file, username, password)
            utils.check_output(f"{oc_cmd} create secret generic {HTPASSWD_SECRET_NAME} "
                               f"--from-file=htpasswd={htpasswd_file} --dry-run=client -o yaml | {oc_cmd} replace -f -")
        else:
            log.info("Secret '%s' not found. Creating a new one.", HTPASSWD_SECRET_NAME)
            htpasswd(htpasswd_file, username, password, create=True)
            utils.check_output(f"{oc_cmd} create secret generic {HTPASSWD_SECRET_NAME} "
                               f"--from-file=htpasswd={htpasswd_file}")

    log.info("Secret '%s' is configured.", HTPASSWD_SECRET_NAME)


def htpasswd_provider():
    return {
        "name": HTPASSWD_PROVIDER_NAME,
        "mappingMethod": "claim",
        "type": "HTPasswd",
        "htpasswd": {"fileData": {"name": HTPASSWD_SECRET_NAME}},
    }


def configure_oauth():
    log.info("Configuring OpenShift OAuth to use htpasswd...")
    oauth = utils.get_json("oauth", "cluster")
    providers = oauth.get("spec", {}).get("identityProviders") or []

    if any(provider.get("name") == HTPASSWD_PROVIDER_NAME for provider in providers):
        log.warning("htpasswd identity provider already configured in OAuth.")
        return False

    if providers:
        patch_type = "json"
        patch = [{"op": "add", "path": "/spec/identityProviders/-", "value": htpasswd_provider()}]
    else:
        patch_type = "merge"
        patch = {"spec": {"identityProviders": [htpasswd_provider()]}}

    utils.check_output(f"{utils.get_oc_command()} patch oauth cluster --type={patch_type} "
                       f"--patch {shlex.quote(json.dumps(patch))}")
    log.info("OAuth configured successfully.")
    return True


def add_user_to_group(username):
    log.info("Adding user '%s' to the '%s' group...", username, CLUSTER_ADMIN_GROUP)
    oc_cmd = utils.get_oc_command()

    if not utils.check_if_exists("group", CLUSTER_ADMIN_GROUP):
        log.warning("Group '%s' not found. Creating it now...", CLUSTER_ADMIN_GROUP)
        utils.check_output(f"{oc_cmd} adm groups new {CLUSTER_ADMIN_GROUP}")

    group = utils.get_json("group", CLUSTER_ADMIN_GROUP)
    if username in (group.get("users") or []):
        log.warning("User '%s' is already in the '%s' group.", username, CLUSTER_ADMIN_GROUP)
        return False

    utils.check_output(f"{oc_cmd} adm groups add-users {CLUSTER_ADMIN_GROUP} {shlex.quote(username)}")
    log.info("User '%s' added to '%s'.", username, CLUSTER_ADMIN_GROUP)
    return True


def create_admin_user(username=None, password=None):
    log.info("Checking for prerequisites...")
    utils.verify_tools(HTPASSWD_CMD)
    utils.verify_oc_login(log)

    if password is None:
        username, password = get_user_credentials(username)

    update_htpasswd_secret(username, password)
    configure_oauth()
    add_user_to_group(username)
    log.info("Htpasswd user creation process completed successfully!")
    return username


def main(args=None):
    deploy_options = handle_arguments(args)
    utils.set_verbose(log, deploy_options.verbose)

    try:
        create_admin_user(deploy_options.username)
    except (errors.DeploymentError, RuntimeError) as e:
        log.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
