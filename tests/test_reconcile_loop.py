"""Tests for the periodic owned-post reconcile task in api/main.py.

The loop is driven with a fake asyncio.sleep that stops it after a fixed
number of ticks, so no test waits on a real interval.
"""

import asyncio
import logging
import threading

import pytest
from sqlalchemy.exc import OperationalError

from api import main as api_main


def _stop_after(ticks: int):
    calls = {"n": 0}

    async def fake_sleep(delay):
        calls["n"] += 1
        if calls["n"] > ticks:
            raise asyncio.CancelledError

    return fake_sleep


def test_failed_pass_is_logged_and_the_loop_keeps_running(ctx, monkeypatch, caplog):
    passes = []

    def flaky_reconcile(context):
        passes.append(context)
        if len(passes) == 1:
            raise OperationalError("UPDATE user_posts", {}, Exception("database is locked"))
        return 0

    monkeypatch.setattr(api_main.service, "reconcile_owned_posts", flaky_reconcile)
    monkeypatch.setattr(asyncio, "sleep", _stop_after(2))

    with caplog.at_level(logging.ERROR, logger="postboard.api"):
        with pytest.raises(asyncio.CancelledError):
            asyncio.run(api_main._reconcile_loop(ctx, 60))

    assert passes == [ctx, ctx]
    assert "Owned-post reconcile pass failed" in caplog.text


def test_pass_runs_off_the_event_loop_thread(ctx, monkeypatch):
    threads = []

    def record_thread(context):
        threads.append(threading.current_thread())
        return 0

    monkeypatch.setattr(api_main.service, "reconcile_owned_posts", record_thread)
    monkeypatch.setattr(asyncio, "sleep", _stop_after(1))

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(api_main._reconcile_loop(ctx, 60))

    assert threads and threads[0] is not threading.main_thread()
