import argparse
import logging
import os
import sys

from logger_config import add_file_handler, setup_custom_logger
from profile_ledger import summary_lines
from profile_orchestrator import BackupOrchestrator, FatalRunError, RestoreOrchestrator
from profile_settings import CONFIG_FILE, load_settings
from profile_sync import (DirectoryProvisioner, PathHealthChecker, ProfileSyncer, RetryExecutor,
                          RetryPolicy)
from shared_methods import log_error, log_info, log_warning
from system_tools import (HostIdentityError, PermissionResetter, SpaceProbe, disconnect_network_share,
                          establish_network_connection, get_unc_share, host_backup_root,
                          parse_host_identity)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_FAILURES = 2


def build_parser(description):
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument('-c', '--config', type=str, default=CONFIG_FILE,
                        help=f"Path to a JSON settings file (default: {CONFIG_FILE})")
    parser.add_argument('--users-root', type=str, help='Folder holding the local user profiles')
    parser.add_argument('--backup-share', type=str,
                        help="Backup share root, may contain a '{site}' placeholder")
    parser.add_argument('--hostname', type=str, help='Override the hostname used to pick the backup folder')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log every copy attempt')
    parser.add_argument('--no-progress', action='store_true', help='Do not show a progress bar')
    return parser


def resolve_settings(args):
    settings = load_settings(args.config)
    if args.users_root:
        settings['USERS_ROOT'] = args.users_root
    if args.backup_share:
        settings['BACKUP_SHARE'] = args.backup_share
    return settings


def resolve_log_directory(settings, backup_root):
    """
    Picks where the run log goes: LOG_DIRECTORY if set, else the host's backup folder.
    The host folder is only used once it exists, so logging never creates it on the share.
    Until then the log is written next to the script.
    """
    if settings['LOG_DIRECTORY']:
        return settings['LOG_DIRECTORY']
    if os.path.isdir(backup_root):
        return backup_root
    return '.'


def build_syncer(settings, logger):
    policy = RetryPolicy(max_attempts=int(settings['MAX_ATTEMPTS']),
                         backoff_seconds=float(settings['BACKOFF_SECONDS']))
    executor = RetryExecutor(logger, policy)
    return ProfileSyncer(logger, executor, DirectoryProvisioner(logger))


def run(action, argv=None):
    """
    Runs a backup or a restore for the current workstation.

    Returns:
    - int: EXIT_OK if every user succeeded, EXIT_FAILURES if some steps failed,
      EXIT_FATAL if the run could not start or had to stop.
    """
    parser = build_parser(f"{action.capitalize()} Chrome and Edge profiles for every user on this workstation.")
    args = parser.parse_args(argv)
    settings = resolve_settings(args)

    try:
        identity = parse_host_identity(args.hostname, settings['HOSTNAME_PATTERN'])
    except HostIdentityError as e:
        print(f"CRITICAL ERROR: {e}")
        return EXIT_FATAL

    backup_root = host_backup_root(settings['BACKUP_SHARE'], identity)
    unc_share = get_unc_share(backup_root)

    logger = setup_custom_logger(f"{action.capitalize()}-Browser-Profiles", None,
                                 logging.DEBUG if args.verbose else logging.INFO)
    network_connection_established = establish_network_connection(
        unc_share, settings['NETWORK_USER'], settings['NETWORK_PASSWORD'], logger)
    add_file_handler(logger, resolve_log_directory(settings, backup_root))

    log_info(logger, f"Starting browser profile {action} for {identity.hostname} (site {identity.site}) using \"{backup_root}\".")
    if settings['NETWORK_USER'] and not network_connection_established:
        log_warning(logger, f"Could not connect to \"{unc_share}\" with the configured credentials, continuing with the current session.")

    syncer = build_syncer(settings, logger)
    health_checker = PathHealthChecker(logger)
    common = dict(logger=logger, missing_profile_policy=settings['MISSING_PROFILE_POLICY'],
                  show_progress=not args.no_progress)
    if action == 'backup':
        orchestrator = BackupOrchestrator(settings['USERS_ROOT'], backup_root, syncer, health_checker,
                                          excluded_users=settings['EXCLUDED_USERS'], **common)
    else:
        orchestrator = RestoreOrchestrator(settings['USERS_ROOT'], backup_root, syncer, health_checker,
                                           PermissionResetter(logger), SpaceProbe(logger), **common)

    try:
        ledger = orchestrator.run()
    except FatalRunError as e:
        log_error(logger, f"CRITICAL ERROR: {action.capitalize()} aborted:", e)
        return EXIT_FATAL
    finally:
        if network_connection_established:
            disconnect_network_share(unc_share, logger)

    for line in summary_lines(ledger, action):
        log_info(logger, line)
    return EXIT_FAILURES if ledger.has_failures() else EXIT_OK


def main_backup(argv=None):
    sys.exit(run('backup', argv))


def main_restore(argv=None):
    sys.exit(run('restore', argv))
