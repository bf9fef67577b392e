import logging
import os

import pytest

from profile_sync import DirectoryProvisioner, ProfileSyncer, RetryExecutor, RetryPolicy, copy_entry


@pytest.fixture
def logger():
    return logging.getLogger("browser-profile-tests")


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def executor(logger, sleeps):
    return RetryExecutor(logger, RetryPolicy(max_attempts=3, backoff_seconds=5), sleep=sleeps.append)


class CountingCopier:
    def __init__(self):
        self.calls = []

    def __call__(self, source, destination):
        self.calls.append((source, destination))
        copy_entry(source, destination)


@pytest.fixture
def copier():
    return CountingCopier()


@pytest.fixture
def syncer(logger, executor, copier):
    return ProfileSyncer(logger, executor, DirectoryProvisioner(logger), copier)


def write_entries(directory, files=(), folders=()):
    """Creates manifest entries in a fake profile or backup directory."""
    os.makedirs(directory, exist_ok=True)
    for name in files:
        with open(os.path.join(directory, name), "w", encoding="utf-8") as handle:
            handle.write(f"{name} data")
    for name in folders:
        folder = os.path.join(directory, name, "nested")
        os.makedirs(folder, exist_ok=True)
        with open(os.path.join(folder, "000003.log"), "w", encoding="utf-8") as handle:
            handle.write(f"{name} data")


def chrome_profile(users_root, user):
    return os.path.join(users_root, user, "AppData", "Local", "Google", "Chrome", "User Data", "Default")


def edge_profile(users_root, user):
    return os.path.join(users_root, user, "AppData", "Local", "Microsoft", "Edge", "User Data", "Default")
