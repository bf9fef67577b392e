"""
Per-user, per-browser record of what happened during one backup or restore run.
"""
import enum

from shared_methods import join_names

SYNC_STEP = 'sync'
PERMISSIONS_STEP = 'permissions'


class StepStatus(enum.Enum):
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    # Not attempted on purpose, e.g. the user never had that browser
    SKIPPED = 'skipped'


class Ledger:
    """
    Accumulates step results as browser -> step -> status -> set of users.

    A user counts as fully successful when at least one of their steps succeeded and
    none failed. Users are kept in sets, so recording the same result twice is harmless.
    """

    def __init__(self, browsers=()):
        self._results = {}
        self._browsers = []
        for browser in browsers:
            self._browser_entry(browser)

    def _browser_entry(self, browser):
        if browser not in self._results:
            self._results[browser] = {}
            self._browsers.append(browser)
        return self._results[browser]

    def _users(self, browser, step, status):
        steps = self._browser_entry(browser)
        statuses = steps.setdefault(step, {s: set() for s in StepStatus})
        return statuses[status]

    def record(self, user, browser, status, step=SYNC_STEP):
        self._users(browser, step, status).add(user)

    def record_outcome(self, outcome, step=SYNC_STEP):
        status = StepStatus.SUCCEEDED if outcome.succeeded else StepStatus.FAILED
        self.record(outcome.user, outcome.browser, status, step)

    def record_step(self, user, browser, succeeded, step=SYNC_STEP):
        self.record(user, browser, StepStatus.SUCCEEDED if succeeded else StepStatus.FAILED, step)

    @property
    def browsers(self):
        return list(self._browsers)

    def steps(self, browser):
        return list(self._results.get(browser, {}))

    def users_with(self, status, browser, step=SYNC_STEP):
        return frozenset(self._results.get(browser, {}).get(step, {}).get(status, ()))

    def succeeded(self, browser, step=SYNC_STEP):
        return self.users_with(StepStatus.SUCCEEDED, browser, step)

    def failed(self, browser, step=SYNC_STEP):
        return self.users_with(StepStatus.FAILED, browser, step)

    def skipped(self, browser, step=SYNC_STEP):
        return self.users_with(StepStatus.SKIPPED, browser, step)

    def _all_users(self, status):
        users = set()
        for steps in self._results.values():
            for statuses in steps.values():
                users.update(statuses[status])
        return users

    def all_users(self):
        users = set()
        for status in StepStatus:
            users.update(self._all_users(status))
        return frozenset(users)

    def has_failures(self):
        return bool(self._all_users(StepStatus.FAILED))

    def fully_successful(self):
        return frozenset(self._all_users(StepStatus.SUCCEEDED) - self._all_users(StepStatus.FAILED))


STEP_LABELS = {
    SYNC_STEP: '{browser} {action} failures',
    PERMISSIONS_STEP: '{browser} permission reset failures',
}


def summary_lines(ledger, action):
    """
    Builds the end-of-run report. Every line except the success line is only emitted
    when it has users to list.

    Args:
    - ledger (Ledger): The finished run's ledger.
    - action (str): 'backup' or 'restore', used in the line labels.

    Returns:
    - list: Lines of text, ready for logging.
    """
    lines = []
    successful = ledger.fully_successful()
    if successful:
        lines.append(f"Successful {action}s: {join_names(successful)}")
    else:
        lines.append(f"No users completed a {action} without errors.")

    for browser in ledger.browsers:
        for step in ledger.steps(browser):
            failed = ledger.failed(browser, step)
            if failed:
                label = STEP_LABELS.get(step, '{browser} {step} failures')
                lines.append(f"{label.format(browser=browser, action=action, step=step)}: {join_names(failed)}")
        skipped = ledger.skipped(browser)
        if skipped:
            lines.append(f"{browser} {action} skipped (nothing to copy): {join_names(skipped)}")
    return lines
