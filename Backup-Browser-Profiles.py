"""
Backs up the Chrome and Edge profiles of every user on this workstation to the site's
backup share, under a folder named after the workstation.

Usage:
    python Backup-Browser-Profiles.py [--config config.json] [--verbose]
"""
from browser_profiles_cli import main_backup

if __name__ == "__main__":
    main_backup()
