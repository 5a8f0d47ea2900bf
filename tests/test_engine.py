"""Transaction helpers: conflict detection and rerun."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.core.exceptions import DependencyFailureError, InsufficientBalanceError
from src.db.engine import is_lock_conflict, retry_on_conflict


def _deadlock() -> OperationalError:
    return OperationalError("UPDATE user_credits", {}, Exception(1213, "Deadlock found"))


def _failed(cause: Exception) -> DependencyFailureError:
    error = DependencyFailureError("Credit ledger write failed")
    error.__cause__ = cause
    return error


class TestIsLockConflict:
    def test_deadlock(self):
        assert is_lock_conflict(_failed(_deadlock()))

    def test_duplicate_insert(self):
        duplicate = IntegrityError("INSERT INTO user_credits", {}, Exception(1062, "Duplicate entry"))
        assert is_lock_conflict(_failed(duplicate))

    def test_other_operational_error(self):
        gone = OperationalError("SELECT 1", {}, Exception(2006, "MySQL server has gone away"))
        assert not is_lock_conflict(_failed(gone))

    def test_plain_failure(self):
        assert not is_lock_conflict(DependencyFailureError("Credit ledger write failed"))


class TestRetryOnConflict:
    async def test_reruns_once_after_conflict(self):
        calls = []

        @retry_on_conflict
        async def use_case():
            calls.append(1)
            if len(calls) == 1:
                raise _failed(_deadlock())
            return "committed"

        assert await use_case() == "committed"
        assert len(calls) == 2

    async def test_second_conflict_is_raised(self):
        calls = []

        @retry_on_conflict
        async def use_case():
            calls.append(1)
            raise _failed(_deadlock())

        with pytest.raises(DependencyFailureError):
            await use_case()
        assert len(calls) == 2

    async def test_domain_errors_are_not_retried(self):
        calls = []

        @retry_on_conflict
        async def use_case():
            calls.append(1)
            raise InsufficientBalanceError()

        with pytest.raises(InsufficientBalanceError):
            await use_case()
        assert len(calls) == 1
