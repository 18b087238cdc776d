from __future__ import annotations

import asyncio

import pytest

from crud_admin.undo.timer import CancellableTimer


@pytest.mark.asyncio
async def test_timer_fires_once_after_delay() -> None:
    fired: list[bool] = []
    timer = CancellableTimer(0.01, lambda: fired.append(True))
    timer.start()
    timer.start()
    assert timer.active

    await asyncio.sleep(0.05)

    assert fired == [True]
    assert timer.fired
    assert not timer.active


@pytest.mark.asyncio
async def test_cancelled_timer_never_fires() -> None:
    fired: list[bool] = []
    timer = CancellableTimer(0.01, lambda: fired.append(True))
    timer.start()

    assert timer.cancel() is True
    assert timer.cancel() is False
    await asyncio.sleep(0.03)

    assert fired == []


@pytest.mark.asyncio
async def test_dispose_is_idempotent_and_blocks_restart() -> None:
    fired: list[bool] = []
    timer = CancellableTimer(0, lambda: fired.append(True))
    timer.start()
    timer.dispose()
    timer.dispose()
    await asyncio.sleep(0.01)

    assert fired == []
    assert timer.disposed
    with pytest.raises(RuntimeError):
        timer.start()


@pytest.mark.asyncio
async def test_failing_callback_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    def explode() -> None:
        raise RuntimeError("boom")

    timer = CancellableTimer(0, explode)
    timer.start()
    await asyncio.sleep(0.01)

    assert "Undo timer callback failed" in caplog.text


def test_negative_delay_is_rejected() -> None:
    with pytest.raises(ValueError):
        CancellableTimer(-0.1, lambda: None)
