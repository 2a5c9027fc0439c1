# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import logging
import math

import trio

from .events import ChordalEvent, TimerFired, TimerKind

logger = logging.getLogger(__name__)


class IdleTimer:
    """A restartable countdown that reports expiry as a TimerFired event.

    The timer never acts on expiry itself; it sends TimerFired into the engine's event channel
    and the engine decides what it means. Each reset or cancel bumps the generation, so a fire
    that was already queued when the timer was restarted can be recognised as stale.
    """

    def __init__(self, kind: TimerKind, duration: float):
        self.kind = kind
        self.duration = duration
        self.deadline = math.inf
        self.generation = 0
        self._rescheduled = trio.Event()

    @property
    def running(self):
        return self.deadline != math.inf

    def _reschedule(self, deadline: float):
        self.deadline = deadline
        self.generation += 1
        self._rescheduled.set()

    def reset(self):
        self._reschedule(trio.current_time() + self.duration)

    def cancel(self):
        if self.running:
            self._reschedule(math.inf)

    def is_current(self, fired: TimerFired):
        return fired.kind is self.kind and fired.generation == self.generation

    async def run(self, send_channel: trio.MemorySendChannel[ChordalEvent], *, task_status=trio.TASK_STATUS_IGNORED):
        task_status.started()
        while True:
            self._rescheduled = trio.Event()
            with trio.move_on_at(self.deadline):
                await self._rescheduled.wait()
                continue
            generation = self.generation
            self.deadline = math.inf
            logger.debug("%s timer expired (generation %d)", self.kind.name, generation)
            await send_channel.send(TimerFired(kind=self.kind, generation=generation))


class IdleSupervisor:
    def __init__(self, *, insert_timeout: float, repeat_timeout: float, prefix_timeout: float):
        self.insert = IdleTimer(TimerKind.INSERT, insert_timeout)
        self.repeat = IdleTimer(TimerKind.REPEAT, repeat_timeout)
        self.prefix = IdleTimer(TimerKind.PREFIX, prefix_timeout)

    def __getitem__(self, kind: TimerKind) -> IdleTimer:
        match kind:
            case TimerKind.INSERT:
                return self.insert
            case TimerKind.REPEAT:
                return self.repeat
            case TimerKind.PREFIX:
                return self.prefix

    async def run(self, send_channel: trio.MemorySendChannel[ChordalEvent], *, task_status=trio.TASK_STATUS_IGNORED):
        async with trio.open_nursery() as nursery:
            for timer in (self.insert, self.repeat, self.prefix):
                await nursery.start(timer.run, send_channel)
            task_status.started()
