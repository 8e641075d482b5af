#tests\test_retry.py

"""Test bounded polling and per-server locks."""

import pytest

from mcserver_engine.core.errors import ServerOperationInProgress, WaitTimeoutError
from mcserver_engine.core.locks import ServerLockRegistry
from mcserver_engine.core.retry import RetryPolicy


class TestRetryPolicy:
    """Test wait_until semantics."""

    def test_returns_first_truthy_result(self, sleeps):
        results = iter([None, None, "ready"])
        policy = RetryPolicy(max_attempts=5, interval_seconds=1.0, sleep=sleeps.append)

        assert policy.wait_until(lambda: next(results), waiting_for="test") == "ready"
        assert sleeps == [1.0, 1.0]

    def test_timeout_does_not_sleep_after_last_attempt(self, sleeps):
        policy = RetryPolicy(max_attempts=3, interval_seconds=2.0, sleep=sleeps.append)

        with pytest.raises(WaitTimeoutError) as exc:
            policy.wait_until(lambda: False, waiting_for="waiting for server files", message="too slow")

        assert str(exc.value) == "too slow"
        assert exc.value.waiting_for == "waiting for server files"
        assert exc.value.attempts == 3
        assert sleeps == [2.0, 2.0]

    def test_probe_errors_propagate(self, sleeps):
        policy = RetryPolicy(max_attempts=3, sleep=sleeps.append)

        def probe():
            raise RuntimeError("broken probe")

        with pytest.raises(RuntimeError):
            policy.wait_until(probe, waiting_for="test")
        assert sleeps == []

    def test_backoff_is_capped(self):
        policy = RetryPolicy(max_attempts=10, interval_seconds=1.0, backoff=2.0, max_interval_seconds=5.0)

        assert policy.delay_for(1) == 1.0
        assert policy.delay_for(3) == 4.0
        assert policy.delay_for(4) == 5.0

    def test_default_ceiling(self):
        assert RetryPolicy().ceiling_seconds == 58.0

    @pytest.mark.parametrize("kwargs", [
        {"max_attempts": 0},
        {"interval_seconds": -1},
        {"backoff": 0.5},
    ])
    def test_invalid_policy(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)


class TestServerLockRegistry:
    """Test per-server mutual exclusion."""

    def test_second_operation_rejected(self):
        locks = ServerLockRegistry()

        with locks.hold("abc123", "delete"):
            assert locks.current_operation("abc123") == "delete"
            with pytest.raises(ServerOperationInProgress) as exc:
                with locks.hold("abc123", "start"):
                    pass

        assert exc.value.operation == "delete"
        assert not locks.is_locked("abc123")

    def test_other_servers_not_blocked(self):
        locks = ServerLockRegistry()

        with locks.hold("abc123", "delete"):
            with locks.hold("def456", "start"):
                assert locks.is_locked("def456")

    def test_released_on_error(self):
        locks = ServerLockRegistry()

        with pytest.raises(RuntimeError):
            with locks.hold("abc123", "provision"):
                raise RuntimeError("failed")

        assert not locks.is_locked("abc123")
