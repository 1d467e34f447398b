from __future__ import annotations

import pytest

from stellar_auth.domain.exceptions import StateNotFoundOrExpiredError


def test_state_is_single_use(state_store):
    state = state_store.issue(redirect_to="https://app.example.com")

    consumed = state_store.consume(state.value)

    assert consumed.redirect_to == "https://app.example.com"
    assert len(state.value) == 64
    with pytest.raises(StateNotFoundOrExpiredError):
        state_store.consume(state.value)


def test_unknown_state_is_rejected(state_store):
    with pytest.raises(StateNotFoundOrExpiredError):
        state_store.consume("does-not-exist")


def test_expired_state_is_rejected_and_removed(state_store, clock):
    state = state_store.issue()
    clock.advance(minutes=11)

    with pytest.raises(StateNotFoundOrExpiredError):
        state_store.consume(state.value)
    assert len(state_store) == 0


def test_sweep_drops_only_expired_states(state_store, clock):
    old = state_store.issue()
    clock.advance(minutes=8)
    fresh = state_store.issue()
    clock.advance(minutes=3)

    assert state_store.sweep() == 1
    assert len(state_store) == 1
    assert state_store.consume(fresh.value).value == fresh.value
    with pytest.raises(StateNotFoundOrExpiredError):
        state_store.consume(old.value)


def test_sweeper_thread_starts_and_stops(state_store):
    state_store.start_sweeper(interval_seconds=0.01)
    state_store.start_sweeper(interval_seconds=0.01)
    state_store.stop_sweeper()
