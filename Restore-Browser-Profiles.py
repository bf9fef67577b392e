"""
Restores the Chrome and Edge profiles backed up for this workstation, then resets the
permissions on every restored profile. Close the browsers before running it.

Usage:
    python Restore-Browser-Profiles.py [--config config.json] [--verbose]
"""
from browser_profiles_cli import main_restore

if __name__ == "__main__":
    main_restore()
