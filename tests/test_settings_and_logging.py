import json
import logging

from logger_config import add_file_handler, setup_custom_logger
from profile_settings import BACKOFF_SECONDS, HOSTNAME_PATTERN, MAX_ATTEMPTS, USERS_ROOT, load_settings
from shared_methods import format_size, get_directory_size, join_names, log_error


def test_defaults_without_config(tmp_path):
    settings = load_settings(str(tmp_path / "config.json"))

    assert settings["USERS_ROOT"] == USERS_ROOT
    assert settings["MAX_ATTEMPTS"] == MAX_ATTEMPTS
    assert settings["NETWORK_USER"] is None


def test_config_overrides_known_keys(tmp_path):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"MAX_ATTEMPTS": 5, "NETWORK_USER": "svc", "UNKNOWN": 1,
                                  "MISSING_PROFILE_POLICY": "skip"}))

    settings = load_settings(str(config))

    assert settings["MAX_ATTEMPTS"] == 5
    assert settings["NETWORK_USER"] == "svc"
    assert settings["MISSING_PROFILE_POLICY"] == "skip"
    assert "UNKNOWN" not in settings


def test_bad_config_falls_back(tmp_path, capsys):
    config = tmp_path / "config.json"
    config.write_text("{not json")

    settings = load_settings(str(config))

    assert settings["USERS_ROOT"] == USERS_ROOT
    assert "Error reading or parsing" in capsys.readouterr().out


def test_invalid_policy_is_reset(tmp_path):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"MISSING_PROFILE_POLICY": "ignore"}))

    assert load_settings(str(config))["MISSING_PROFILE_POLICY"] == "fail"


def test_logger_writes_timestamped_lines_once(tmp_path):
    logger = setup_custom_logger("Backup-Test", str(tmp_path / "logs"))
    logger = setup_custom_logger("Backup-Test", str(tmp_path / "logs"))
    logger.info("Backed up alice")
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / "logs" / "Backup-Test.log").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    assert lines[0].endswith("INFO - test_settings_and_logging - Backed up alice")
    assert len(logger.handlers) == 2


def test_logger_survives_unwritable_directory(tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("file")

    logger = setup_custom_logger("Restore-Test", str(blocker / "logs"))

    assert [type(h) for h in logger.handlers] == [logging.StreamHandler]


def test_log_error_includes_exception(caplog, logger):
    caplog.set_level(logging.ERROR, logger="browser-profile-tests")

    log_error(logger, "Copy failed:", OSError("disk gone"))
    log_error(logger, "No exception")

    assert [r.getMessage() for r in caplog.records] == ["Copy failed: disk gone", "No exception"]


def test_directory_size_and_formatting(tmp_path):
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "History").write_bytes(b"x" * 1000)
    (tmp_path / "Cookies").write_bytes(b"x" * 24)

    assert get_directory_size(str(tmp_path)) == 1024
    assert get_directory_size(str(tmp_path / "missing")) == 0
    assert format_size(1024) == "1.00 KB"
    assert format_size(12 * 1024 ** 3) == "12.00 GB"


def test_join_names_coalesces():
    assert join_names(["bob", "Alice", "bob"]) == "Alice, bob"


def test_bad_numbers_fall_back_to_defaults(tmp_path, capsys):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"MAX_ATTEMPTS": "three", "BACKOFF_SECONDS": -1}))

    settings = load_settings(str(config))

    assert settings["MAX_ATTEMPTS"] == MAX_ATTEMPTS
    assert settings["BACKOFF_SECONDS"] == BACKOFF_SECONDS
    output = capsys.readouterr().out
    assert "MAX_ATTEMPTS must be a number" in output
    assert "BACKOFF_SECONDS must be a number" in output


def test_numeric_strings_are_converted(tmp_path):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"MAX_ATTEMPTS": "4", "BACKOFF_SECONDS": "2.5"}))

    settings = load_settings(str(config))

    assert settings["MAX_ATTEMPTS"] == 4
    assert settings["BACKOFF_SECONDS"] == 2.5


def test_hostname_pattern_needs_site_group(tmp_path):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"HOSTNAME_PATTERN": r"^\d{4}-.+$"}))
    assert load_settings(str(config))["HOSTNAME_PATTERN"] == HOSTNAME_PATTERN

    config.write_text(json.dumps({"HOSTNAME_PATTERN": "(unclosed"}))
    assert load_settings(str(config))["HOSTNAME_PATTERN"] == HOSTNAME_PATTERN

    config.write_text(json.dumps({"HOSTNAME_PATTERN": r"^LAB(?P<site>\d+)-"}))
    assert load_settings(str(config))["HOSTNAME_PATTERN"] == r"^LAB(?P<site>\d+)-"


def test_file_handler_is_added_after_connecting(tmp_path):
    logger = setup_custom_logger("Restore-Deferred", None)
    assert [type(h) for h in logger.handlers] == [logging.StreamHandler]
    logger.info("Connecting to share")

    assert add_file_handler(logger, str(tmp_path)) is True
    logger.info("Restoring alice")
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / "Restore-Deferred.log").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    assert lines[0].endswith("Restoring alice")
