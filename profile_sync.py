"""
Copy engine for browser profile backups.

Copies a fixed manifest of profile files and folders between a local browser profile
and its folder on the backup share, retrying transient network failures and refusing
to read from directories that cannot be listed.
"""
import enum
import os
import shutil
import time
from dataclasses import dataclass, field

from shared_methods import log_debug, log_error, log_info, log_warning

# The same manifest is used for Chrome and Edge, in both directions.
MANIFEST_FILES = ('Bookmarks', 'Preferences', 'Login Data', 'History', 'Cookies', 'Web Data')
MANIFEST_FOLDERS = ('Extensions', 'Local Storage', 'Session Storage', 'Sync Data')

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 5

# OSError subclasses that will not go away by waiting
PERMANENT_OS_ERRORS = (PermissionError, NotADirectoryError, IsADirectoryError, FileExistsError)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS


def is_transient_error(error):
    """
    Decides whether a failed file operation is worth retrying.

    Dropped SMB connections surface as plain OSError (or shutil.Error, which collects
    the OSErrors of a tree copy), so those are retried. Access denied and path type
    conflicts are reported straight away.
    """
    return isinstance(error, OSError) and not isinstance(error, PERMANENT_OS_ERRORS)


class RetryExecutor:
    """
    Runs zero-argument file operations with a bounded, constant-backoff retry.
    """

    def __init__(self, logger=None, policy=None, classifier=is_transient_error, sleep=time.sleep):
        self.logger = logger
        self.policy = policy or RetryPolicy()
        self.classifier = classifier
        self.sleep = sleep

    def execute(self, operation, description=None):
        """
        Runs an operation until it succeeds, fails permanently or runs out of attempts.

        Args:
        - operation (callable): A zero-argument action. Its return value is ignored.
        - description (str): Text used in the log lines (optional).

        Returns:
        - bool: True if an attempt completed without raising, False otherwise.
        """
        description = description or getattr(operation, '__name__', 'operation')
        max_attempts = max(1, self.policy.max_attempts)

        for attempt in range(1, max_attempts + 1):
            try:
                operation()
            except Exception as e:
                if not self.classifier(e):
                    log_error(self.logger, f"Attempt [{attempt}/{max_attempts}] {description} failed permanently, not retrying:", e)
                    return False
                if attempt == max_attempts:
                    log_error(self.logger, f"Attempt [{attempt}/{max_attempts}] {description} failed, giving up:", e)
                    return False
                log_warning(self.logger, f"Attempt [{attempt}/{max_attempts}] {description} failed, retrying in {self.policy.backoff_seconds}s: {e}")
                self.sleep(self.policy.backoff_seconds)
            else:
                log_debug(self.logger, f"Attempt [{attempt}/{max_attempts}] {description} succeeded.")
                return True
        return False


class PathHealth(enum.Enum):
    ABSENT = 'absent'
    CORRUPTED = 'corrupted'
    HEALTHY = 'healthy'


class PathHealthChecker:
    """
    Existence and readability probe for a directory that is about to be copied from.

    This cannot detect damaged file contents, only directories that are missing or
    cannot be enumerated (access denied, broken share, bad sectors).
    """

    def __init__(self, logger=None, list_directory=os.listdir):
        self.logger = logger
        self.list_directory = list_directory

    def probe(self, directory):
        if not os.path.isdir(directory):
            log_debug(self.logger, f"Directory does not exist: \"{directory}\".")
            return PathHealth.ABSENT
        try:
            self.list_directory(directory)
        except OSError as e:
            log_warning(self.logger, f"Directory \"{directory}\" cannot be enumerated, treating as corrupted: {e}")
            return PathHealth.CORRUPTED
        return PathHealth.HEALTHY

    def is_corrupted(self, directory):
        return self.probe(directory) is not PathHealth.HEALTHY


class DirectoryProvisioner:
    """Makes sure a destination directory exists, creating parents as needed."""

    def __init__(self, logger=None):
        self.logger = logger

    def ensure(self, path):
        if os.path.isdir(path):
            return
        if os.path.exists(path):
            raise NotADirectoryError(f"\"{path}\" exists but is not a directory")
        os.makedirs(path, exist_ok=True)
        log_info(self.logger, f"Created directory: \"{path}\".")


class SyncDirection(enum.Enum):
    TO_BACKUP = 'backup'
    FROM_BACKUP = 'restore'


@dataclass(frozen=True)
class SyncOutcome:
    user: str
    browser: str
    direction: SyncDirection
    succeeded: bool
    reason: str = None
    copied: tuple = field(default_factory=tuple)
    failed: tuple = field(default_factory=tuple)


def copy_entry(source, destination):
    """
    Copies a file or a whole folder, overwriting whatever is already at the destination.
    Folders are merged into an existing destination folder.

    Raises:
    - IsADirectoryError: If source is a file and destination is a folder. shutil.copy2 would
      otherwise drop the file inside that folder instead of replacing it.
    """
    if os.path.isdir(source):
        shutil.copytree(source, destination, dirs_exist_ok=True)
    elif os.path.isdir(destination):
        raise IsADirectoryError(f"Cannot overwrite folder \"{destination}\" with file \"{source}\"")
    else:
        shutil.copy2(source, destination)


class ProfileSyncer:
    """
    Copies one browser profile's manifest between the profile and its backup folder.

    Every manifest entry is attempted even after earlier entries fail; the outcome
    reports one aggregate result for the whole profile.
    """

    def __init__(self, logger=None, executor=None, provisioner=None, copier=copy_entry):
        self.logger = logger
        self.executor = executor or RetryExecutor(logger)
        self.provisioner = provisioner or DirectoryProvisioner(logger)
        self.copier = copier

    def sync(self, direction, profile_directory, backup_directory,
             manifest_files=MANIFEST_FILES, manifest_folders=MANIFEST_FOLDERS, user=None, browser=None):
        """
        Copies the manifest in the given direction.

        Args:
        - direction (SyncDirection): TO_BACKUP copies profile -> backup, FROM_BACKUP copies backup -> profile.
        - profile_directory (str): The browser's "User Data/Default" directory.
        - backup_directory (str): The browser's folder on the backup share.
        - manifest_files (iterable): File names to copy when present.
        - manifest_folders (iterable): Folder names to copy when present.
        - user (str), browser (str): Recorded on the outcome.

        Returns:
        - SyncOutcome: succeeded is False if the source is missing, the destination could not
          be created, or any present manifest entry could not be copied.
        """
        if direction is SyncDirection.TO_BACKUP:
            source, destination = profile_directory, backup_directory
        else:
            source, destination = backup_directory, profile_directory

        def outcome(succeeded, reason=None, copied=(), failed=()):
            return SyncOutcome(user, browser, direction, succeeded, reason, tuple(copied), tuple(failed))

        if not os.path.isdir(source):
            log_error(self.logger, f"{browser} {direction.value} for {user}: source \"{source}\" is missing.")
            return outcome(False, 'source missing')

        if not self.executor.execute(lambda: self.provisioner.ensure(destination), f"create \"{destination}\""):
            log_error(self.logger, f"{browser} {direction.value} for {user}: could not create \"{destination}\".")
            return outcome(False, 'destination unavailable')

        copied = []
        failed = []
        for name in list(manifest_files) + list(manifest_folders):
            source_item = os.path.join(source, name)
            if not os.path.exists(source_item):
                log_debug(self.logger, f"Skipping \"{name}\", not present in \"{source}\".")
                continue
            destination_item = os.path.join(destination, name)
            if self.executor.execute(lambda: self.copier(source_item, destination_item), f"copy \"{source_item}\""):
                copied.append(name)
            else:
                failed.append(name)

        if failed:
            log_error(self.logger, f"{browser} {direction.value} for {user}: {len(failed)} item(s) failed: {', '.join(failed)}.")
            return outcome(False, f"copy failed: {', '.join(failed)}", copied, failed)

        log_info(self.logger, f"{browser} {direction.value} for {user}: copied {len(copied)} item(s) to \"{destination}\".")
        return outcome(True, copied=copied)

    def sync_target(self, direction, target, manifest_files=MANIFEST_FILES, manifest_folders=MANIFEST_FOLDERS):
        return self.sync(direction, target.profile_directory, target.backup_directory,
                         manifest_files, manifest_folders, user=target.user, browser=target.browser)
