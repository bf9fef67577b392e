"""
Thin wrappers around the Windows tools the backup and restore runs depend on.
"""
import os
import re
import shutil
import socket
import subprocess
from dataclasses import dataclass

from shared_methods import format_size, log_error, log_info, log_warning


class HostIdentityError(ValueError):
    pass


@dataclass(frozen=True)
class HostIdentity:
    hostname: str
    site: str


def parse_host_identity(hostname=None, pattern=r'^(?P<site>\d{3,4})-[A-Za-z0-9-]+$'):
    """
    Works out which site a workstation belongs to from its hostname.

    Workstations are named '<site number>-<name>', e.g. '0412-FRONTDESK01'. The pattern
    must define a 'site' group.

    Raises:
    - HostIdentityError: If the hostname does not follow the naming convention, or the
      pattern is invalid or has no 'site' group.
    """
    hostname = (hostname or socket.gethostname()).strip().upper()
    try:
        compiled = re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise HostIdentityError(f"Invalid hostname pattern \"{pattern}\": {e}") from e
    if 'site' not in compiled.groupindex:
        raise HostIdentityError(f"Hostname pattern \"{pattern}\" has no 'site' group")
    match = compiled.match(hostname)
    if not match:
        raise HostIdentityError(f"Hostname \"{hostname}\" does not match the naming convention \"{pattern}\"")
    return HostIdentity(hostname=hostname, site=match.group('site'))


def host_backup_root(backup_share, identity):
    """Returns '<share>/<hostname>', filling a '{site}' placeholder in the share path."""
    return os.path.join(backup_share.format(site=identity.site), identity.hostname)


class PermissionResetter:
    """
    Resets the ACLs of a restored profile so the user owns their files again.
    """

    def __init__(self, logger=None, runner=subprocess.run):
        self.logger = logger
        self.runner = runner

    def reset(self, path):
        # /T recurses, /C continues past errors, /Q suppresses success messages
        command = ["icacls", path, "/reset", "/T", "/C", "/Q"]
        try:
            process = self.runner(command, capture_output=True, text=True, check=False)
        except FileNotFoundError:
            log_error(self.logger, "icacls command not found. Ensure it is in your system's PATH.")
            return False
        except OSError as e:
            log_error(self.logger, f"Could not run icacls on \"{path}\":", e)
            return False

        if process.returncode != 0:
            log_error(self.logger, f"Resetting permissions on \"{path}\" failed with code {process.returncode}: {(process.stderr or process.stdout or '').strip()}")
            return False
        log_info(self.logger, f"Reset permissions on \"{path}\".")
        return True


class SpaceProbe:
    """Reports free space on the system volume, where user profiles live."""

    def __init__(self, logger=None, volume=None):
        self.logger = logger
        self.volume = volume or (os.getenv('SystemDrive', 'C:') + '\\')

    def free_bytes(self):
        free = shutil.disk_usage(self.volume).free
        log_info(self.logger, f"Free space on {self.volume}: {format_size(free)}")
        return free


def get_unc_share(path):
    """
    Returns the '\\\\server\\share' part of a UNC path, or None for local paths.
    """
    parts = path.replace('/', '\\').split('\\')
    if not path.startswith(('\\\\', '//')) or len(parts) < 4 or not parts[2] or not parts[3]:
        return None
    return f"\\\\{parts[2]}\\{parts[3]}"


def establish_network_connection(unc_share, network_user, network_password, logger=None, runner=subprocess.run):
    """
    Connects to the UNC share with explicit credentials when they are configured.
    Returns True if a connection was established, False otherwise.
    """
    if not (unc_share and network_user and network_password):
        return False

    log_info(logger, f"Attempting to connect to network share \"{unc_share}\" with user \"{network_user}\"...")
    connect_command = ["net", "use", unc_share, f"/user:{network_user}", network_password]
    try:
        runner(connect_command, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as e:
        log_error(logger, f"Failed to connect to network share \"{unc_share}\", 'net use' failed:", (e.stderr or '').strip())
        return False
    except OSError as e:
        log_error(logger, f"Could not run 'net use' for \"{unc_share}\":", e)
        return False
    log_info(logger, "Network connection successful.")
    return True


def disconnect_network_share(unc_share, logger=None, runner=subprocess.run):
    log_info(logger, f"Disconnecting from network share \"{unc_share}\"...")
    try:
        runner(["net", "use", unc_share, "/delete"], check=False, capture_output=True)
    except OSError as e:
        log_warning(logger, f"Could not disconnect \"{unc_share}\": {e}")
