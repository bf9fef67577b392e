import pytest

from profile_sync import RetryExecutor, RetryPolicy, is_transient_error


class FlakyOperation:
    def __init__(self, failures, error=None):
        self.failures = failures
        self.error = error or OSError("The specified network name is no longer available")
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error


@pytest.mark.parametrize("failures", [0, 1, 2])
def test_transient_failures_below_limit_recover(executor, sleeps, failures):
    operation = FlakyOperation(failures)

    assert executor.execute(operation, "copy Bookmarks") is True
    assert operation.calls == failures + 1
    assert sleeps == [5] * failures


def test_always_transient_gives_up_after_max_attempts(executor, sleeps):
    operation = FlakyOperation(failures=100)

    assert executor.execute(operation) is False
    assert operation.calls == 3
    # No wait after the final attempt
    assert sleeps == [5, 5]


def test_permission_error_aborts_immediately(executor, sleeps):
    operation = FlakyOperation(failures=100, error=PermissionError("Access is denied"))

    assert executor.execute(operation) is False
    assert operation.calls == 1
    assert sleeps == []


def test_non_os_error_is_not_retried(executor):
    operation = FlakyOperation(failures=100, error=ValueError("bad path"))

    assert executor.execute(operation) is False
    assert operation.calls == 1


def test_custom_classifier_and_policy(logger):
    waits = []
    executor = RetryExecutor(logger, RetryPolicy(max_attempts=5, backoff_seconds=1),
                             classifier=lambda e: isinstance(e, ValueError), sleep=waits.append)
    operation = FlakyOperation(failures=4, error=ValueError("try again"))

    assert executor.execute(operation) is True
    assert operation.calls == 5
    assert waits == [1, 1, 1, 1]


def test_logs_one_line_per_attempt(executor, caplog):
    caplog.set_level("DEBUG", logger="browser-profile-tests")

    executor.execute(FlakyOperation(failures=1), "copy History")

    attempt_lines = [r.getMessage() for r in caplog.records if "copy History" in r.getMessage()]
    assert len(attempt_lines) == 2
    assert "retrying" in attempt_lines[0]
    assert "succeeded" in attempt_lines[1]


def test_transient_classification():
    import shutil

    assert is_transient_error(OSError(64, "network name deleted"))
    assert is_transient_error(shutil.Error([("a", "b", "copy failed")]))
    assert not is_transient_error(PermissionError("denied"))
    assert not is_transient_error(NotADirectoryError("file in the way"))
    assert not is_transient_error(RuntimeError("bug"))
