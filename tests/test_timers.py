# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import math

import pytest
import trio
import trio.testing

from chordal.commontypes import Mode
from chordal.engine import Engine, Processed
from chordal.events import KeyEvent, TimerFired, TimerKind
from chordal.timers import IdleTimer


async def start(engine: Engine, nursery: trio.Nursery) -> list[Processed]:
    processed = []
    process = engine.process

    async def recording_process(event):
        result = await process(event)
        processed.append(result)
        return result

    engine.process = recording_process
    await nursery.start(engine.run)
    return processed


async def send(engine: Engine, *keys: str):
    for key in keys:
        await engine.event_send_channel.send(KeyEvent.parse(key))
    await trio.testing.wait_all_tasks_blocked()


def timer_fires(processed: list[Processed], kind: TimerKind):
    return [p for p in processed if isinstance(p.event, TimerFired) and p.event.kind is kind]


async def test_repeat_timer_fires_once(make_engine, nursery: trio.Nursery, autojump_clock: trio.testing.MockClock):
    engine = make_engine()
    processed = await start(engine, nursery)
    await send(engine, "j")
    assert engine.overlay.group == "line-navigation"

    await trio.sleep(119)
    assert engine.overlay is not None
    await trio.sleep(2)
    await trio.testing.wait_all_tasks_blocked()
    assert engine.overlay is None
    assert engine.mode is Mode.COMMAND

    await trio.sleep(1000)
    fires = timer_fires(processed, TimerKind.REPEAT)
    assert len(fires) == 1
    assert fires[0].synthesized == KeyEvent.tap("Escape")


async def test_repeat_chain_keeps_overlay_alive(make_engine, nursery: trio.Nursery, autojump_clock: trio.testing.MockClock):
    engine = make_engine()
    await start(engine, nursery)
    await send(engine, "j")
    await trio.sleep(100)
    await send(engine, "k")
    await trio.sleep(100)
    assert engine.overlay.group == "line-navigation"
    await trio.sleep(30)
    await trio.testing.wait_all_tasks_blocked()
    assert engine.overlay is None


async def test_insert_timer_returns_to_command(make_engine, host, nursery: trio.Nursery, autojump_clock: trio.testing.MockClock):
    engine = make_engine()
    processed = await start(engine, nursery)
    await send(engine, "i")
    await trio.sleep(60)
    await send(engine, "q")
    await trio.sleep(100)
    assert engine.mode is Mode.INSERT
    await trio.sleep(30)
    await trio.testing.wait_all_tasks_blocked()
    assert engine.mode is Mode.COMMAND
    (fire,) = timer_fires(processed, TimerKind.INSERT)
    assert fire.synthesized == KeyEvent.tap("Escape")
    assert [i.state.name for i in host.indicators] == ["COMMAND", "INSERT", "COMMAND"]


async def test_repeat_timer_in_insert_mode_only_drops_overlay(make_engine, nursery: trio.Nursery, autojump_clock: trio.testing.MockClock):
    engine = make_engine(repeat_timeout="30s")
    await start(engine, nursery)
    await send(engine, "F14", "hold:F14", "j")
    assert engine.mode is Mode.INSERT
    assert engine.overlay.group == "line-navigation"
    await trio.sleep(31)
    await trio.testing.wait_all_tasks_blocked()
    assert engine.overlay is None
    assert engine.mode is Mode.INSERT
    await trio.sleep(100)
    await trio.testing.wait_all_tasks_blocked()
    assert engine.mode is Mode.COMMAND


async def test_prefix_timeout(make_engine, host, nursery: trio.Nursery, autojump_clock: trio.testing.MockClock):
    engine = make_engine()
    await start(engine, nursery)
    await send(engine, "hold:F13")
    assert engine.state.prefix is not None
    await trio.sleep(3)
    await trio.testing.wait_all_tasks_blocked()
    assert engine.state.prefix is None
    await send(engine, "f")
    assert host.executed == []
    assert host.unhandled_events == [KeyEvent.tap("f")]


async def test_stale_fire_is_discarded(make_engine):
    engine = make_engine()
    await engine.process(KeyEvent.tap("j"))
    stale = TimerFired(kind=TimerKind.REPEAT, generation=engine.timers.repeat.generation)
    await engine.process(KeyEvent.tap("j"))
    processed = await engine.process(stale)
    assert processed.synthesized is None
    assert engine.overlay is not None


async def test_fire_without_precondition_is_ignored(make_engine):
    engine = make_engine()
    fired = TimerFired(kind=TimerKind.INSERT, generation=engine.timers.insert.generation)
    processed = await engine.process(fired)
    assert processed.synthesized is None
    assert engine.mode is Mode.COMMAND


async def test_idle_timer_generations():
    timer = IdleTimer(TimerKind.REPEAT, 5)
    assert not timer.running
    timer.reset()
    assert timer.running
    fired = TimerFired(kind=TimerKind.REPEAT, generation=timer.generation)
    assert timer.is_current(fired)
    assert not timer.is_current(TimerFired(kind=TimerKind.INSERT, generation=timer.generation))
    timer.reset()
    assert not timer.is_current(fired)
    timer.cancel()
    assert timer.deadline == math.inf
    generation = timer.generation
    timer.cancel()
    assert timer.generation == generation


async def test_shutdown_drains_events(make_engine, host):
    engine = make_engine()
    async with trio.open_nursery() as nursery:
        await nursery.start(engine.run)
        await engine.event_send_channel.send(KeyEvent.tap("j"))
        await engine.shutdown()
    assert host.executed == ["next-line"]


@pytest.mark.parametrize("kind", list(TimerKind))
async def test_timer_sends_fire(kind: TimerKind, nursery: trio.Nursery, autojump_clock: trio.testing.MockClock):
    send_channel, receive_channel = trio.open_memory_channel(1)
    timer = IdleTimer(kind, 10)
    await nursery.start(timer.run, send_channel)
    timer.reset()
    with trio.fail_after(11):
        fired = await receive_channel.receive()
    assert fired == TimerFired(kind=kind, generation=timer.generation)
    assert not timer.running
