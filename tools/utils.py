import json
import logging
import os
import shlex
import shutil
import subprocess

import waiting
import yaml

import errors


OC_CMD = 'oc'
KUSTOMIZE_CMD = 'kustomize'

CRD_WAIT_TIMEOUT = int(os.environ.get('CRD_WAIT_TIMEOUT', '300'))
CRD_WAIT_SLEEP = 10


def get_logger(name, level=logging.INFO):
    fmt = '[%(levelname)s] %(asctime)s - %(name)s - %(message)s'
    log = logging.getLogger(name)
    log.setLevel(level)
    if not log.handlers:
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter(fmt))
        log.addHandler(sh)
    return log


def set_verbose(log, verbose):
    log.setLevel(logging.DEBUG if verbose else logging.INFO)


def check_output(command, raise_on_error=True, input=None):
    process = subprocess.run(
        command,
        shell=True,
        input=input,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        universal_newlines=True
    )

    out = process.stdout.strip()
    err = process.stderr.strip()

    if raise_on_error and process.returncode != 0:
        raise RuntimeError(f'command={command} exited with an error={err if err else out} code={process.returncode}')

    return out if out else err


def is_tool(name):
    """Check whether `name` is on PATH and marked as executable."""
    return shutil.which(name) is not None


def verify_tools(*names):
    missing = [name for name in names if not is_tool(name)]
    if missing:
        raise errors.PrerequisiteMissing(f"Required command(s) not found on PATH: {', '.join(missing)}")


def get_oc_command(namespace=None):
    cmd = OC_CMD

    kubeconfig = os.environ.get('OC_KUBECONFIG')
    if kubeconfig:
        cmd += f' --kubeconfig {shlex.quote(kubeconfig)}'

    if namespace:
        cmd += f' --namespace {namespace}'

    return cmd


def whoami():
    try:
        return check_output(f'{get_oc_command()} whoami')
    except RuntimeError:
        raise errors.PrerequisiteMissing("Not logged into OpenShift. Please run 'oc login' first.")


def verify_oc_login(log=None):
    verify_tools(OC_CMD)
    user = whoami()
    if log:
        log.info("Connected to OpenShift as %s", user)
    return user


def get_jsonpath(k8s_object, k8s_object_name, jsonpath, namespace=None):
    oc_cmd = get_oc_command(namespace)
    return check_output(f"{oc_cmd} get {k8s_object} {k8s_object_name} -o jsonpath='{jsonpath}'")


def get_json(k8s_object, k8s_object_name, namespace=None):
    oc_cmd = get_oc_command(namespace)
    return json.loads(check_output(f'{oc_cmd} get {k8s_object} {k8s_object_name} -o json'))


def apply(file, namespace=None):
    oc_cmd = get_oc_command(namespace)
    print(check_output(f'{oc_cmd} apply -f {shlex.quote(file)}'))


def apply_kustomize(directory, namespace=None):
    oc_cmd = get_oc_command(namespace)
    print(check_output(f'{KUSTOMIZE_CMD} build {shlex.quote(directory)} | {oc_cmd} apply -f -'))


def check_if_exists(k8s_object, k8s_object_name, namespace=None):
    try:
        oc_cmd = get_oc_command(namespace)
        check_output(f'{oc_cmd} get {k8s_object} {k8s_object_name} --no-headers')
        output = True
    except RuntimeError:
        output = False

    return output


def wait_for_crd(crd_name, log, timeout=CRD_WAIT_TIMEOUT, sleep=CRD_WAIT_SLEEP):
    log.warning("Waiting for the '%s' Custom Resource Definition to be available...", crd_name)
    log.warning("This can take a few minutes after the operator is installed.")
    try:
        waiting.wait(
            lambda: check_if_exists('crd', crd_name),
            timeout_seconds=timeout,
            sleep_seconds=sleep,
            waiting_for=f"CRD {crd_name}")
    except waiting.TimeoutExpired:
        raise errors.DeploymentTimeout(
            f"Timed out waiting for CRD '{crd_name}'. The operator may have failed to install correctly.")
    log.info("CRD '%s' is now available.", crd_name)


def confirm(question, assume_yes=False):
    if assume_yes:
        return True
    reply = input(f"{question} [y/N]: ")
    return reply.strip().lower() in ('y', 'yes')


def dump_yaml_file_docs(dst_file, docs):
    with open(dst_file, 'w') as fp:
        yaml.dump_all(docs, fp, Dumper=yaml.SafeDumper, explicit_start=True, sort_keys=False)

    return dst_file
