"""
Tests for bounded retry with backoff.
"""
import pytest

from support_bot.retry import retry_call


class Flaky:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("transient")
        return "ok"


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    delays = []
    monkeypatch.setattr("support_bot.retry.time.sleep", delays.append)
    return delays


def test_succeeds_after_transient_failures(no_sleep):
    func = Flaky(failures=2)

    assert retry_call(func, retry_on=(ConnectionError,), attempts=3, base_delay=0.1) == "ok"
    assert func.calls == 3
    assert len(no_sleep) == 2
    # jitter adds at most the base delay for that attempt
    assert 0.1 <= no_sleep[0] <= 0.2
    assert 0.2 <= no_sleep[1] <= 0.4


def test_reraises_after_last_attempt():
    func = Flaky(failures=5)

    with pytest.raises(ConnectionError):
        retry_call(func, retry_on=(ConnectionError,), attempts=3, base_delay=0.1)
    assert func.calls == 3


def test_other_errors_are_not_retried():
    def boom():
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        retry_call(boom, retry_on=(ConnectionError,), attempts=3)
