"""Placeholder domain substitution for the keycloak/ and rhdh/ manifests.

Templates checked into the repository carry the literal CLUSTER_PLACEHOLDER
(or host names built on top of it). The functions here resolve the real
cluster domain, rewrite the templates in place after taking a timestamped
backup, and verify that no placeholder survived the rewrite.
"""

import datetime
import os
import re
import shutil
from dataclasses import dataclass
from typing import Dict, List, Optional

import errors
import utils


CLUSTER_PLACEHOLDER = 'cluster-<GUID>.dynamic.redhatworkshops.io'
INGRESS_PREFIX = 'apps.'

MAX_DOMAIN_LENGTH = 253
DOMAIN_PATTERN = re.compile(r'^[a-zA-Z0-9]([a-zA-Z0-9.-]*[a-zA-Z0-9])?$')

BACKUP_SUFFIX = '.backup'
BACKUP_TIMESTAMP_FORMAT = '%Y%m%d%H%M%S'
# file.backup, file.backup.20250101120000[_1] and file.backup_20250101_120000
BACKUP_PATTERN = re.compile(r'\.backup(\.\d{14}(_\d+)?|_\d{8}_\d{6})?$')

UPDATED = 'updated'
SKIPPED = 'skipped'
PREVIEW = 'preview'

log = utils.get_logger('domain-configurator')


@dataclass
class FileResult:
    path: str
    status: str
    replacements: int = 0
    backup_path: Optional[str] = None


def validate_domain(domain, name='cluster'):
    if not domain:
        raise errors.ValidationError(domain, name, reason='empty value')

    if len(domain) > MAX_DOMAIN_LENGTH:
        raise errors.ValidationError(domain, name, reason=f'too long (max {MAX_DOMAIN_LENGTH} characters)')

    if not DOMAIN_PATTERN.match(domain):
        raise errors.ValidationError(domain, name)

    return domain


def strip_prefix(domain, prefix=INGRESS_PREFIX):
    if domain.startswith(prefix):
        return domain[len(prefix):]
    return domain


def host_token(host_prefix):
    return f'{host_prefix}.{INGRESS_PREFIX}{CLUSTER_PLACEHOLDER}'


def detect_ingress_domain(log=log):
    """Return the ingress domain reported by the cluster, e.g. ``apps.mycluster.example.com``."""
    log.info("Auto-detecting domains from OpenShift cluster...")
    utils.verify_oc_login(log)

    try:
        domain = utils.get_jsonpath('ingresses.config.openshift.io', 'cluster', '{.spec.domain}')
    except RuntimeError as e:
        log.debug("Could not read the cluster ingress config: %s", e)
        domain = ''

    if not domain:
        # Fallback: any route host minus its first label
        try:
            route_host = utils.get_jsonpath('routes', '-A', '{.items[0].spec.host}')
        except RuntimeError as e:
            log.debug("Could not list routes: %s", e)
            route_host = ''
        domain = route_host.partition('.')[2]

    domain = domain.strip()
    if not domain:
        raise errors.DetectionError("Could not auto-detect cluster domain. Please specify domains manually.")

    log.info("Detected cluster domain: %s", domain)
    return domain


def detect_cluster_suffix(log=log):
    suffix = strip_prefix(detect_ingress_domain(log))
    log.info("Using cluster suffix for replacement: %s", suffix)
    return validate_domain(suffix)


def backup_path_for(path, now=None):
    now = now or datetime.datetime.now()
    backup_path = f'{path}{BACKUP_SUFFIX}.{now.strftime(BACKUP_TIMESTAMP_FORMAT)}'

    # Never overwrite an earlier backup taken within the same second
    candidate, index = backup_path, 1
    while os.path.exists(candidate):
        candidate = f'{backup_path}_{index}'
        index += 1
    return candidate


def create_backup(path, log=log):
    backup_path = backup_path_for(path)
    shutil.copy2(path, backup_path)
    log.info("Backup created: %s", backup_path)
    return backup_path


def count_tokens(data, substitutions):
    counts = {}
    for token in ordered_tokens(substitutions):
        counts[token] = data.count(token)
        # Occurrences inside a longer token are not counted twice
        data = data.replace(token, '')
    return counts


def ordered_tokens(substitutions):
    # Host-level tokens contain the bare placeholder, replace them first
    return sorted(substitutions, key=len, reverse=True)


def substitute(data, substitutions):
    for token in ordered_tokens(substitutions):
        data = data.replace(token, substitutions[token])
    return data


def configure_file(path, substitutions: Dict[str, str], backup=True, dry_run=False, log=log) -> FileResult:
    if not os.path.isfile(path):
        raise errors.MissingFileError(path)

    with open(path) as src:
        data = src.read()

    counts = count_tokens(data, substitutions)
    total = sum(counts.values())
    if total == 0:
        log.warning("No template placeholders found in %s. The file may have already been updated. Skipping.", path)
        return FileResult(path=path, status=SKIPPED)

    if dry_run:
        log.info("In %s:", path)
        for token in ordered_tokens(substitutions):
            if counts[token]:
                log.info("  %s -> %s (%d occurrence(s))", token, substitutions[token], counts[token])
        return FileResult(path=path, status=PREVIEW, replacements=total)

    backup_path = create_backup(path, log) if backup else None

    log.debug("Updating %s", path)
    with open(path, 'w') as dst:
        dst.write(substitute(data, substitutions))

    with open(path) as src:
        remaining = count_tokens(src.read(), substitutions)
    for token, count in remaining.items():
        if count:
            raise errors.SubstitutionIncompleteError(path, token, count)

    log.info("Successfully updated %s (%d replacement(s))", path, total)
    return FileResult(path=path, status=UPDATED, replacements=total, backup_path=backup_path)


def configure_files(paths, substitutions: Dict[str, str], backup=True, dry_run=False, log=log) -> List[FileResult]:
    """Substitute every token of ``substitutions`` in each of ``paths``, one file at a time.

    All values are validated before the first file is read. Processing stops
    at the first failing file; files handled before it stay modified and
    keep their backups.
    """
    for token, value in substitutions.items():
        validate_domain(value, name=token)

    results = []
    for path in paths:
        log.info("Processing %s...", path)
        results.append(configure_file(path, substitutions, backup=backup, dry_run=dry_run, log=log))
    return results


def is_backup_file(filename):
    return BACKUP_PATTERN.search(filename) is not None


def find_backups(root):
    backups = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d != '.git')
        for filename in sorted(filenames):
            if is_backup_file(filename):
                backups.append(os.path.join(dirpath, filename))
    return backups


def remove_backups(root, dry_run=False, log=log):
    backups = find_backups(root)
    for backup_path in backups:
        if dry_run:
            log.info("Would delete %s", backup_path)
            continue
        os.remove(backup_path)
        log.debug("Deleted %s", backup_path)

    if not dry_run:
        log.info("Removed %d backup file(s) under %s", len(backups), root)
    return backups
