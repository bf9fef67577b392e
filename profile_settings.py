import json
import os
import re

# =================================================================================================
#  Configuration
# =================================================================================================

# --- !! UPDATE THESE VALUES !! ---

# Root of the backup share. '{site}' is replaced by the site number parsed from the hostname.
# Example: r'\\fileserver\BrowserBackups\Site{site}'
BACKUP_SHARE = r"\\fileserver\BrowserBackups\Site{site}"

# Folder holding the local user profiles.
USERS_ROOT = r"C:\Users"

# Accounts that are never backed up. Compared case-insensitively.
EXCLUDED_USERS = ["Administrator", "Public", "Default", "Default User", "All Users"]

# Workstation naming convention, must define a 'site' group.
HOSTNAME_PATTERN = r"^(?P<site>\d{3,4})-[A-Za-z0-9-]+$"

# Copy retries for flaky network shares.
MAX_ATTEMPTS = 3
BACKOFF_SECONDS = 5

# What to do when a user has no profile (backup) or no backup (restore) for a browser:
# "fail" records a failure, "skip" records it as skipped.
MISSING_PROFILE_POLICY = "fail"

# Where the run log is written. Empty means the host's folder on the backup share.
LOG_DIRECTORY = ""

# --- Path to the configuration file for overrides and network credentials ---
CONFIG_FILE = "config.json"

# =================================================================================================
#      Do not edit below this line unless you know what you are doing.
# =================================================================================================

MISSING_PROFILE_POLICIES = ("fail", "skip")


def default_settings():
    return {
        "BACKUP_SHARE": BACKUP_SHARE,
        "USERS_ROOT": USERS_ROOT,
        "EXCLUDED_USERS": list(EXCLUDED_USERS),
        "HOSTNAME_PATTERN": HOSTNAME_PATTERN,
        "MAX_ATTEMPTS": MAX_ATTEMPTS,
        "BACKOFF_SECONDS": BACKOFF_SECONDS,
        "MISSING_PROFILE_POLICY": MISSING_PROFILE_POLICY,
        "LOG_DIRECTORY": LOG_DIRECTORY,
        "NETWORK_USER": None,
        "NETWORK_PASSWORD": None,
    }


def load_settings(config_file=CONFIG_FILE):
    """
    Returns the default settings, overridden by any matching keys in config_file.

    A missing file is normal. An unreadable or malformed file is reported and ignored,
    so a broken config never stops a scheduled backup. Unknown keys are ignored too.
    """
    settings = default_settings()
    if not config_file or not os.path.exists(config_file):
        print(f"Info: Settings file '{config_file}' not found. Using built-in defaults.")
        return settings

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            overrides = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        print(f"Error reading or parsing '{config_file}': {e}. Using built-in defaults.")
        return settings

    if not isinstance(overrides, dict):
        print(f"Warning: '{config_file}' does not contain a JSON object. Using built-in defaults.")
        return settings

    for key, value in overrides.items():
        if key in settings:
            settings[key] = value

    if settings["MISSING_PROFILE_POLICY"] not in MISSING_PROFILE_POLICIES:
        print(f"Warning: MISSING_PROFILE_POLICY must be one of {MISSING_PROFILE_POLICIES}, using '{MISSING_PROFILE_POLICY}'.")
        settings["MISSING_PROFILE_POLICY"] = MISSING_PROFILE_POLICY

    settings["MAX_ATTEMPTS"] = checked_number(settings, "MAX_ATTEMPTS", int, 1, MAX_ATTEMPTS)
    settings["BACKOFF_SECONDS"] = checked_number(settings, "BACKOFF_SECONDS", float, 0, BACKOFF_SECONDS)

    if not is_valid_hostname_pattern(settings["HOSTNAME_PATTERN"]):
        print(f"Warning: HOSTNAME_PATTERN must be a regular expression with a 'site' group, using '{HOSTNAME_PATTERN}'.")
        settings["HOSTNAME_PATTERN"] = HOSTNAME_PATTERN
    return settings


def checked_number(settings, key, convert, minimum, default):
    """
    Returns settings[key] converted with convert, or default (with a warning) if the value
    is not a number or is below minimum.
    """
    value = settings[key]
    try:
        if isinstance(value, bool):
            raise ValueError("booleans are not numbers")
        number = convert(value)
    except (TypeError, ValueError):
        number = None
    if number is None or number < minimum:
        print(f"Warning: {key} must be a number of at least {minimum}, got {value!r}. Using {default}.")
        return default
    return number


def is_valid_hostname_pattern(pattern):
    if not isinstance(pattern, str):
        return False
    try:
        return 'site' in re.compile(pattern).groupindex
    except re.error:
        return False
