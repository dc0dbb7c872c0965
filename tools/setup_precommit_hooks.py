import argparse
import os
import shlex
import sys

import deployment_options
import errors
import utils

REQUIRED_TOOLS = ("git", "pre-commit", "kustomize")
OPTIONAL_TOOLS = ("oc", "kubectl", "yq", "detect-secrets")

PRECOMMIT_CONFIG = ".pre-commit-config.yaml"
SECRETS_BASELINE = ".secrets.baseline"
HOOK_TYPES = ("pre-commit", "pre-push", "commit-msg")

log = utils.get_logger('setup-precommit-hooks')


def handle_arguments(args=None):
    parser = argparse.ArgumentParser(description="Install and configure pre-commit hooks for this repository")
    parser.add_argument('--force', help=f'Rewrite {PRECOMMIT_CONFIG} even if it exists', action='store_true')
    parser.add_argument('--validate', help='Run the hooks on the kustomization files', action='store_true')
    return deployment_options.load_deployment_options(parser, args)


def check_prerequisites(repo_root):
    utils.verify_tools(*REQUIRED_TOOLS)

    missing_optional = [tool for tool in OPTIONAL_TOOLS if not utils.is_tool(tool)]
    if missing_optional:
        log.warning("Optional tools missing: %s", ", ".join(missing_optional))

    try:
        utils.check_output(f"git -C {shlex.quote(repo_root)} rev-parse --git-dir")
    except RuntimeError:
        raise errors.PrerequisiteMissing(f"Not in a git repository: {repo_root}")

    for directory in (deployment_options.KEYCLOAK_DIR, deployment_options.RHDH_DIR):
        if not os.path.isdir(os.path.join(repo_root, directory)):
            log.warning("Expected directory %s/ not found in %s", directory, repo_root)


def precommit_config():
    return {
        "repos": [
            {
                "repo": "https://github.com/pre-commit/pre-commit-hooks",
                "rev": "v4.6.0",
                "hooks": [
                    {"id": "trailing-whitespace"},
                    {"id": "end-of-file-fixer"},
                    {"id": "mixed-line-ending", "args": ["--fix=lf"]},
                    {"id": "check-merge-conflict"},
                    {"id": "check-executables-have-shebangs"},
                    {"id": "check-yaml", "args": ["--allow-multiple-documents"]},
                ],
            },
            {
                "repo": "https://github.com/adrienverge/yamllint",
                "rev": "v1.35.1",
                "hooks": [{"id": "yamllint", "args": ["-d", "{extends: relaxed, rules: {line-length: disable}}"]}],
            },
            {
                "repo": "https://github.com/Yelp/detect-secrets",
                "rev": "v1.5.0",
                "hooks": [{"id": "detect-secrets", "args": ["--baseline", SECRETS_BASELINE]}],
            },
            {
                "repo": "local",
                "hooks": [
                    {
                        "id": f"kustomize-build-{directory}",
                        "name": f"kustomize build {directory}",
                        "entry": f"kustomize build {directory}",
                        "language": "system",
                        "pass_filenames": False,
                        "files": f"^{directory}/",
                    }
                    for directory in (deployment_options.KEYCLOAK_DIR, deployment_options.RHDH_DIR)
                ],
            },
        ]
    }


def write_precommit_config(repo_root, force=False):
    config_file = os.path.join(repo_root, PRECOMMIT_CONFIG)
    if os.path.exists(config_file) and not force:
        log.info("%s already exists", PRECOMMIT_CONFIG)
        return config_file

    utils.dump_yaml_file_docs(config_file, [precommit_config()])
    log.info("Wrote %s", config_file)
    return config_file


def create_secrets_baseline(repo_root):
    baseline_file = os.path.join(repo_root, SECRETS_BASELINE)
    if os.path.exists(baseline_file):
        log.info("%s already exists", SECRETS_BASELINE)
        return baseline_file

    if not utils.is_tool("detect-secrets"):
        log.warning("detect-secrets is not installed, %s was not created", SECRETS_BASELINE)
        return None

    baseline = utils.check_output(f"cd {shlex.quote(repo_root)} && detect-secrets scan .")
    with open(baseline_file, "w") as f:
        f.write(baseline + "\n")
    log.info("%s created, review it and update as needed", SECRETS_BASELINE)
    return baseline_file


def install_hooks(repo_root):
    for hook_type in HOOK_TYPES:
        print(utils.check_output(f"cd {shlex.quote(repo_root)} && pre-commit install --hook-type {hook_type}"))
    log.info("pre-commit hooks installed")


def validate_setup(repo_root):
    sample_files = [
        os.path.join(directory, "kustomization.yaml")
        for directory in (deployment_options.KEYCLOAK_DIR, deployment_options.RHDH_DIR)
        if os.path.isfile(os.path.join(repo_root, directory, "kustomization.yaml"))
    ]
    log.info("Running pre-commit on %s", ", ".join(sample_files))
    files = " ".join(shlex.quote(f) for f in sample_files)
    print(utils.check_output(f"cd {shlex.quote(repo_root)} && pre-commit run --files {files}", raise_on_error=False))


def main(args=None):
    deploy_options = handle_arguments(args)
    utils.set_verbose(log, deploy_options.verbose)
    repo_root = deploy_options.repo_root

    try:
        check_prerequisites(repo_root)
        write_precommit_config(repo_root, force=deploy_options.force)
        create_secrets_baseline(repo_root)
        install_hooks(repo_root)
        if deploy_options.validate:
            validate_setup(repo_root)
    except (errors.DeploymentError, RuntimeError) as e:
        log.error("%s", e)
        return 1

    log.info("Run 'pre-commit run --all-files' to test all hooks")
    return 0


if __name__ == "__main__":
    sys.exit(main())
