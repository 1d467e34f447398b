from __future__ import annotations

from datetime import timedelta

from stellar_auth.application.services.login_attempt_tracker import LoginAttemptTracker


def test_lockout_after_max_attempts(login_attempts, audit_port):
    for _ in range(4):
        login_attempts.record_failed_attempt("alice@example.com", "203.0.113.7")
    assert login_attempts.is_locked("alice@example.com").locked is False

    record = login_attempts.record_failed_attempt("alice@example.com", "203.0.113.7")

    assert record.count == 5
    status = login_attempts.is_locked("ALICE@example.com")
    assert status.locked is True
    assert status.remaining_minutes == 15
    assert audit_port.kinds().count("LOGIN_FAILED") == 5
    assert "ACCOUNT_LOCKED" in audit_port.kinds()


def test_remaining_minutes_rounds_up(login_attempts, clock):
    for _ in range(5):
        login_attempts.record_failed_attempt("alice@example.com")

    clock.advance(minutes=14, seconds=1)
    status = login_attempts.is_locked("alice@example.com")

    assert status.locked is True
    assert status.remaining_minutes == 1


def test_lock_expires_and_count_restarts(login_attempts, clock):
    for _ in range(5):
        login_attempts.record_failed_attempt("alice@example.com")

    clock.advance(minutes=15)
    assert login_attempts.is_locked("alice@example.com").locked is False

    record = login_attempts.record_failed_attempt("alice@example.com")
    assert record.count == 1
    assert record.locked_until is None


def test_reset_window_restarts_the_count(login_attempts, clock):
    login_attempts.record_failed_attempt("alice@example.com")
    login_attempts.record_failed_attempt("alice@example.com")

    clock.advance(minutes=61)
    record = login_attempts.record_failed_attempt("alice@example.com")

    assert record.count == 1


def test_clear_attempts_resets_counter(login_attempts, attempt_port):
    for _ in range(3):
        login_attempts.record_failed_attempt("alice@example.com")

    login_attempts.clear_attempts("alice@example.com")

    assert "alice@example.com" not in attempt_port.records
    assert login_attempts.record_failed_attempt("alice@example.com").count == 1


def test_state_is_shared_through_the_durable_store(attempt_port, audit_port, clock):
    first = LoginAttemptTracker(attempt_port=attempt_port, audit_port=audit_port, clock=clock)
    for _ in range(5):
        first.record_failed_attempt("alice@example.com")

    second = LoginAttemptTracker(attempt_port=attempt_port, audit_port=audit_port, clock=clock)

    assert second.is_locked("alice@example.com").locked is True


def test_store_failures_fall_back_to_the_cache(login_attempts, attempt_port):
    attempt_port.fail = True

    for _ in range(5):
        login_attempts.record_failed_attempt("alice@example.com")

    assert login_attempts.is_locked("alice@example.com").locked is True


def test_custom_thresholds(attempt_port, audit_port, clock):
    tracker = LoginAttemptTracker(
        attempt_port=attempt_port,
        audit_port=audit_port,
        max_attempts=2,
        lockout_duration=timedelta(minutes=1),
        clock=clock,
    )
    tracker.record_failed_attempt("bob@example.com")
    tracker.record_failed_attempt("bob@example.com")

    status = tracker.is_locked("bob@example.com")
    assert status.locked is True
    assert status.remaining_minutes == 1
