from __future__ import annotations

import pytest

from src.upastithi.upastithi.common.retry import retry_transient
from src.upastithi.upastithi.core.exceptions import NotFoundError, StoreTimeoutError, StoreUnavailableError


class Flaky:
    def __init__(self, failures, result="ok"):
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


def test_returns_after_transient_failures_with_backoff():
    delays = []
    func = Flaky([StoreUnavailableError("reset"), StoreTimeoutError("slow")])

    assert retry_transient(func, attempts=3, base_delay=0.5, sleep=delays.append) == "ok"
    assert func.calls == 3
    assert delays == [0.5, 1.0]


def test_gives_up_after_last_attempt():
    delays = []
    func = Flaky([StoreTimeoutError("slow")] * 5)

    with pytest.raises(StoreTimeoutError):
        retry_transient(func, attempts=3, base_delay=0.1, sleep=delays.append)
    assert func.calls == 3
    assert len(delays) == 2


def test_does_not_retry_domain_errors():
    func = Flaky([NotFoundError("gone")])
    with pytest.raises(NotFoundError):
        retry_transient(func, sleep=lambda _: None)
    assert func.calls == 1


def test_single_attempt_means_no_retry():
    func = Flaky([StoreUnavailableError("down")])
    with pytest.raises(StoreUnavailableError):
        retry_transient(func, attempts=0, sleep=lambda _: None)
    assert func.calls == 1
