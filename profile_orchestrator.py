"""
Walks the users on a workstation and backs up or restores their Chrome and Edge profiles.
"""
import os
from dataclasses import dataclass

from tqdm import tqdm

from profile_ledger import PERMISSIONS_STEP, Ledger, StepStatus
from profile_sync import PathHealth, SyncDirection
from shared_methods import format_size, get_directory_size, log_error, log_info, log_warning

# Browser name -> vendor folders under AppData\Local
BROWSERS = {
    'Chrome': ('Google', 'Chrome'),
    'Edge': ('Microsoft', 'Edge'),
}

DEFAULT_EXCLUDED_USERS = ('Administrator', 'Public', 'Default', 'Default User', 'All Users')


class FatalRunError(Exception):
    """A precondition failed that makes the whole run pointless."""


@dataclass(frozen=True)
class BrowserTarget:
    user: str
    browser: str
    profile_directory: str
    backup_directory: str


def make_target(users_root, backup_root, user, browser):
    vendor_folders = BROWSERS[browser]
    profile_directory = os.path.join(users_root, user, 'AppData', 'Local', *vendor_folders, 'User Data', 'Default')
    backup_directory = os.path.join(backup_root, user, browser)
    return BrowserTarget(user, browser, profile_directory, backup_directory)


def list_user_directories(root, excluded=()):
    """
    Returns the sorted names of the directories directly inside root.

    Raises:
    - FatalRunError: If root cannot be listed.
    """
    excluded_lower = {name.lower() for name in excluded}
    try:
        names = os.listdir(root)
    except OSError as e:
        raise FatalRunError(f"Could not list users in \"{root}\": {e}") from e
    return sorted(
        (name for name in names
         if name.lower() not in excluded_lower and os.path.isdir(os.path.join(root, name))),
        key=str.lower,
    )


def discover_local_users(users_root, excluded=DEFAULT_EXCLUDED_USERS):
    return list_user_directories(users_root, excluded)


def discover_backup_users(backup_root):
    return list_user_directories(backup_root)


class ProfileOrchestrator:
    """Shared plumbing for the backup and restore runs."""

    action = None

    def __init__(self, users_root, backup_root, syncer, health_checker, logger=None,
                 browsers=tuple(BROWSERS), missing_profile_policy='fail', show_progress=False):
        self.users_root = users_root
        self.backup_root = backup_root
        self.syncer = syncer
        self.health_checker = health_checker
        self.logger = logger
        self.browsers = tuple(browsers)
        self.missing_profile_policy = missing_profile_policy
        self.show_progress = show_progress

    def discover_users(self):
        raise NotImplementedError

    def process_user(self, user, ledger, progress_bar=None):
        raise NotImplementedError

    def run(self):
        """
        Processes every discovered user and returns the filled-in Ledger.

        Raises:
        - FatalRunError: If the backup root is unusable or no users are found.
        """
        users = self.discover_users()
        if not users:
            raise FatalRunError(f"No users found to {self.action}.")
        self.prepare_backup_root()
        log_info(self.logger, f"Found users to {self.action}: {', '.join(users)}")

        ledger = Ledger(self.browsers)
        with tqdm(total=len(users), desc=f"{self.action.capitalize()} profiles", unit='users',
                  disable=not self.show_progress) as progress_bar:
            for user in users:
                log_info(self.logger, f"Starting {self.action} for {user}.", progress_bar)
                self.process_user(user, ledger, progress_bar)
                progress_bar.update(1)
        return ledger

    def prepare_backup_root(self):
        pass

    def gate(self, user, browser, directory, ledger, progress_bar=None):
        """
        Checks the directory a copy would read from. Returns True if the copy may go ahead,
        otherwise records the failure (or skip) for this browser and returns False.
        """
        health = self.health_checker.probe(directory)
        if health is PathHealth.HEALTHY:
            return True
        if health is PathHealth.ABSENT and self.missing_profile_policy == 'skip':
            log_info(self.logger, f"No {browser} data for {user} at \"{directory}\", skipping.", progress_bar)
            ledger.record(user, browser, StepStatus.SKIPPED)
            return False
        log_error(self.logger, f"{browser} {self.action} for {user} not attempted, \"{directory}\" is {health.value}.", progress_bar=progress_bar)
        ledger.record(user, browser, StepStatus.FAILED)
        return False

    def fail_all_browsers(self, user, ledger, reason, progress_bar=None):
        log_error(self.logger, f"{self.action.capitalize()} for {user} skipped: {reason}", progress_bar=progress_bar)
        for browser in self.browsers:
            ledger.record(user, browser, StepStatus.FAILED)


class BackupOrchestrator(ProfileOrchestrator):
    action = 'backup'

    def __init__(self, users_root, backup_root, syncer, health_checker, logger=None,
                 excluded_users=DEFAULT_EXCLUDED_USERS, **kwargs):
        super().__init__(users_root, backup_root, syncer, health_checker, logger, **kwargs)
        self.excluded_users = tuple(excluded_users)

    def discover_users(self):
        return discover_local_users(self.users_root, self.excluded_users)

    def prepare_backup_root(self):
        # The host folder is created on the first backup, so it is provisioned rather than probed
        if not self.syncer.executor.execute(lambda: self.syncer.provisioner.ensure(self.backup_root),
                                            f"create \"{self.backup_root}\""):
            raise FatalRunError(f"Backup root \"{self.backup_root}\" is unreachable.")

    def process_user(self, user, ledger, progress_bar=None):
        for browser in self.browsers:
            target = make_target(self.users_root, self.backup_root, user, browser)
            if not self.gate(user, browser, target.profile_directory, ledger, progress_bar):
                continue
            outcome = self.syncer.sync_target(SyncDirection.TO_BACKUP, target)
            ledger.record_outcome(outcome)


class RestoreOrchestrator(ProfileOrchestrator):
    action = 'restore'

    def __init__(self, users_root, backup_root, syncer, health_checker, permission_resetter, space_probe,
                 logger=None, **kwargs):
        super().__init__(users_root, backup_root, syncer, health_checker, logger, **kwargs)
        self.permission_resetter = permission_resetter
        self.space_probe = space_probe

    def discover_users(self):
        return discover_backup_users(self.backup_root)

    def run(self):
        # A damaged backup root most likely means none of the data under it can be trusted
        health = self.health_checker.probe(self.backup_root)
        if health is not PathHealth.HEALTHY:
            raise FatalRunError(f"Backup root \"{self.backup_root}\" is {health.value}.")
        return super().run()

    def required_bytes(self, user):
        return sum(
            get_directory_size(os.path.join(self.backup_root, user, browser), self.logger)
            for browser in self.browsers
        )

    def has_enough_space(self, user, progress_bar=None):
        required = self.required_bytes(user)
        try:
            available = self.space_probe.free_bytes()
        except OSError as e:
            log_error(self.logger, f"Could not determine free disk space for {user}:", e, progress_bar)
            return False
        if required > available:
            log_warning(self.logger, f"Not enough disk space to restore {user}: need {format_size(required)}, {format_size(available)} free.", progress_bar)
            return False
        return True

    def process_user(self, user, ledger, progress_bar=None):
        user_root = os.path.join(self.users_root, user)
        if not os.path.isdir(user_root):
            self.fail_all_browsers(user, ledger, f"local profile folder \"{user_root}\" does not exist.", progress_bar)
            return
        if not self.has_enough_space(user, progress_bar):
            self.fail_all_browsers(user, ledger, "insufficient disk space.", progress_bar)
            return

        for browser in self.browsers:
            target = make_target(self.users_root, self.backup_root, user, browser)
            if not self.gate(user, browser, target.backup_directory, ledger, progress_bar):
                continue
            outcome = self.syncer.sync_target(SyncDirection.FROM_BACKUP, target)
            ledger.record_outcome(outcome)
            if outcome.succeeded:
                reset_ok = self.permission_resetter.reset(target.profile_directory)
                ledger.record_step(user, browser, reset_ok, PERMISSIONS_STEP)
