"""Tests for the background expiry sweeper."""

import asyncio
import logging
from datetime import timedelta

import pytest

from wildlife_tracker.models import Sighting
from wildlife_tracker.services.sweeper import ExpirySweeper

SANTA_CRUZ = {"lat": 36.99, "lng": -122.05}


@pytest.fixture
def sweeper(session_factory, clock) -> ExpirySweeper:
    return ExpirySweeper(
        session_factory,
        expiry_window=timedelta(hours=1),
        interval=timedelta(milliseconds=10),
        clock=clock,
    )


def test_run_once_deletes_expired_and_logs_count(sweeper, store, clock, db, caplog):
    store.create("deer", location=SANTA_CRUZ)
    store.create("turkey", location=SANTA_CRUZ)
    clock.advance(minutes=30)
    keeper = store.create("goat", location=SANTA_CRUZ)
    clock.advance(minutes=31)

    with caplog.at_level(logging.INFO, logger="wildlife_tracker.services.sweeper"):
        deleted = sweeper.run_once()

    assert deleted == 2
    assert "2 deleted" in caplog.text
    assert [s.id for s in db.query(Sighting).all()] == [keeper.id]


def test_run_once_is_idempotent(sweeper, store, clock):
    store.create("deer", location=SANTA_CRUZ)
    clock.advance(hours=2)

    assert sweeper.run_once() == 1
    assert sweeper.run_once() == 0


def test_interval_must_be_positive(session_factory):
    with pytest.raises(ValueError):
        ExpirySweeper(session_factory, interval=timedelta(0))


def test_loop_runs_repeatedly_and_stops(sweeper):
    calls = []
    sweeper.run_once = lambda: calls.append(1) or 0

    async def scenario():
        sweeper.start()
        assert sweeper.running
        for _ in range(300):
            await asyncio.sleep(0.01)
            if len(calls) >= 3:
                break
        await sweeper.stop()

    asyncio.run(scenario())

    assert len(calls) >= 3
    assert not sweeper.running


def test_failed_cycle_does_not_stop_the_loop(sweeper, caplog):
    calls = []

    def flaky_run_once():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("database went away")
        return 0

    sweeper.run_once = flaky_run_once

    async def scenario():
        sweeper.start()
        for _ in range(300):
            await asyncio.sleep(0.01)
            if len(calls) >= 2:
                break
        await sweeper.stop()

    with caplog.at_level(logging.ERROR, logger="wildlife_tracker.services.sweeper"):
        asyncio.run(scenario())

    assert len(calls) >= 2
    assert "Error cleaning up expired sightings" in caplog.text


def test_stop_without_start_is_a_no_op(sweeper):
    asyncio.run(sweeper.stop())

    assert not sweeper.running
