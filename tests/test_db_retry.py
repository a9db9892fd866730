import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from services.db_retry import is_transient_error, run_with_retry


def _operational() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection refused"))


def test_transient_errors_are_retried_with_doubling_delay() -> None:
    delays = []
    rollbacks = []
    outcomes = [_operational(), _operational(), "ok"]

    def _operation():
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    result = run_with_retry(
        _operation,
        attempts=3,
        base_delay=0.1,
        on_retry=lambda: rollbacks.append(True),
        sleep=delays.append,
    )

    assert result == "ok"
    assert delays == [0.1, 0.2]
    assert len(rollbacks) == 2


def test_gives_up_after_last_attempt() -> None:
    delays = []

    def _operation():
        raise _operational()

    with pytest.raises(OperationalError):
        run_with_retry(_operation, attempts=2, base_delay=0.5, sleep=delays.append)
    assert delays == [0.5]


def test_non_transient_errors_are_not_retried() -> None:
    calls = []

    def _operation():
        calls.append(1)
        raise IntegrityError("INSERT", {}, Exception("duplicate key"))

    with pytest.raises(IntegrityError):
        run_with_retry(_operation, attempts=5, base_delay=0.0, sleep=lambda _delay: None)
    assert len(calls) == 1


def test_transient_classification() -> None:
    assert is_transient_error(_operational())
    assert is_transient_error(TimeoutError())
    assert not is_transient_error(ValueError("bad input"))
