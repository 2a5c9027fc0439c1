# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import abc
import logging
import math
import subprocess
import typing

import trio

from .commontypes import ActionRef, Indicator

if typing.TYPE_CHECKING:
    from .events import KeyEvent

logger = logging.getLogger(__name__)


class Host(metaclass=abc.ABCMeta):
    """The application that owns the behaviour behind every ActionRef."""

    @abc.abstractmethod
    async def execute(self, action: ActionRef):
        "Run the action, raising if it fails."

    @abc.abstractmethod
    def selection_active(self) -> bool: ...

    @abc.abstractmethod
    async def clear_selection(self): ...

    @abc.abstractmethod
    async def unhandled(self, event: KeyEvent):
        "Default handling for keys that resolve to nothing, e.g. self-insertion in insert mode."

    @abc.abstractmethod
    def show_indicator(self, indicator: Indicator): ...


class LoggingHost(Host):
    def __init__(self):
        self.executed: list[ActionRef] = []
        self.selection = False

    async def execute(self, action: ActionRef):
        self.executed.append(action)
        logger.info("execute %s", action)
        await trio.lowlevel.checkpoint()

    def selection_active(self):
        return self.selection

    async def clear_selection(self):
        logger.info("clear selection")
        self.selection = False
        await trio.lowlevel.checkpoint()

    async def unhandled(self, event: KeyEvent):
        logger.info("unhandled %s%s", "hold:" if event.held else "", event.key)
        await trio.lowlevel.checkpoint()

    def show_indicator(self, indicator: Indicator):
        logger.info("indicator %s %s (%s)", indicator.state.name, indicator.glyph, indicator.color)


class Notifier:
    """Tells an external process whether insert mode is active.

    Delivery is fire-and-forget: notify() only queues the new state, and a single run() task
    delivers queued states one at a time, in order. When several states queue up while a
    delivery is in flight, only the newest is delivered next. A delivery that fails is logged and
    dropped. The mode transition that triggered it has already completed.
    """

    def __init__(self, command: typing.Optional[list[str]]):
        self.command = command
        self.running = False
        self._send_channel, self._receive_channel = trio.open_memory_channel[int](math.inf)

    def notify(self, insert_active: bool):
        if self.command is None:
            return
        if not self.running:
            logger.debug("Notifier not running; dropping insert=%d", insert_active)
            return
        self._send_channel.send_nowait(int(insert_active))

    def render(self, insert_active: int) -> list[str]:
        return [part.replace("{insert}", str(insert_active)) for part in self.command]

    def _latest(self, insert_active: int) -> int:
        while True:
            try:
                insert_active = self._receive_channel.receive_nowait()
            except trio.WouldBlock:
                return insert_active

    async def run(self, *, task_status=trio.TASK_STATUS_IGNORED):
        self.running = True
        try:
            task_status.started()
            async for insert_active in self._receive_channel:
                await self._deliver(self._latest(insert_active))
        finally:
            self.running = False

    async def _deliver(self, insert_active: int):
        argv = self.render(insert_active)
        try:
            await trio.run_process(argv, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except (OSError, subprocess.CalledProcessError) as exc:
            logger.warning("Mode notification %r failed: %r", argv, exc)
