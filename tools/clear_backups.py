import argparse
import sys

import deployment_options
import domain_configurator
import utils

log = utils.get_logger('clear-backups')


def main(args=None):
    parser = argparse.ArgumentParser(description="Delete manifest backup files left by the configuration tools")
    parser.add_argument('-y', '--yes', help='Do not ask for confirmation', action='store_true')
    deploy_options = deployment_options.load_deployment_options(parser, args)
    utils.set_verbose(log, deploy_options.verbose)

    backups = domain_configurator.find_backups(deploy_options.repo_root)
    if not backups:
        log.info("No backup files found under %s", deploy_options.repo_root)
        return 0

    if deploy_options.dry_run:
        domain_configurator.remove_backups(deploy_options.repo_root, dry_run=True, log=log)
        return 0

    if not utils.confirm(f"Delete {len(backups)} backup file(s)? Only do this once the deployment succeeded.",
                         deploy_options.yes):
        log.info("Keeping backup files")
        return 0

    domain_configurator.remove_backups(deploy_options.repo_root, log=log)
    return 0


if __name__ == "__main__":
    sys.exit(main())
