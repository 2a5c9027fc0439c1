# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import logging
import typing

import msgspec
import outcome
import trio
import trio_util

from .bindings import TableSet
from .commontypes import ActionExecutionFailure, ActionRef, Indicator, IndicatorState, Mode
from .events import ChordalEvent, KeyEvent, TimerFired, TimerKind
from .host import Host, Notifier
from .keys import ESCAPE
from .layout import LayoutTable
from .repeat import OverlayState, RepeatRegistry, after_action
from .resolver import Prefix, Resolution, resolve
from .timers import IdleSupervisor

if typing.TYPE_CHECKING:
    from .settings import Settings

logger = logging.getLogger(__name__)

INSERT_MODE = "insert-mode"
COMMAND_MODE = "command-mode"
TOGGLE_LAYOUT = "toggle-layout"
BUILTIN_ACTIONS = frozenset([INSERT_MODE, COMMAND_MODE, TOGGLE_LAYOUT])


class Shutdown(msgspec.Struct, frozen=True):
    pass


class Processed(msgspec.Struct, frozen=True):
    event: ChordalEvent
    # the resolved action, UNBOUND or PENDING; None when the event never reached the resolver
    result: typing.Optional[ActionRef | Resolution] = None
    failure: typing.Optional[ActionExecutionFailure] = None
    synthesized: typing.Optional[KeyEvent] = None


class EngineState:
    """Everything that changes while the engine runs. Only Engine.process writes to it."""

    def __init__(self, tables: TableSet, translating: bool):
        self.mode = Mode.COMMAND
        self.overlay: typing.Optional[OverlayState] = None
        self.prefix: typing.Optional[Prefix] = None
        self.tables = tables
        self.translating = translating

    @property
    def indicator_state(self):
        return IndicatorState.project(self.mode, self.overlay is not None)


class Engine:
    """The modal key engine.

    Key events and timer expiries arrive on one channel and are handled one at a time by
    process(): resolve, run the action, update the repeat overlay, apply any mode change, then
    publish the indicator. Nothing else mutates the engine state.
    """

    indicator: trio_util.AsyncValue[Indicator]

    def __init__(self, settings: Settings, host: Host):
        self.settings = settings
        self.host = host
        self.layouts = {name: LayoutTable.build(name, declaration) for name, declaration in settings.layouts.items()}
        self.registry = RepeatRegistry(settings.repeat_groups)
        tables = self._build_tables(settings.translate)
        self.registry.check_tables(tables)
        self.state = EngineState(tables, settings.translate)
        self.insert_actions = frozenset(settings.insert_actions) | {INSERT_MODE}
        self.command_actions = frozenset(settings.command_actions) | {COMMAND_MODE}
        self.timers = IdleSupervisor(
            insert_timeout=settings.insert_timeout.total_seconds(),
            repeat_timeout=settings.repeat_timeout.total_seconds(),
            prefix_timeout=settings.prefix_timeout.total_seconds(),
        )
        self.notifier = Notifier(settings.notify_command)
        self.indicators = {state: Indicator(state, *settings.indicators[state]) for state in IndicatorState}
        self.indicator = trio_util.AsyncValue(self.indicators[self.state.indicator_state])
        self.event_send_channel, self.event_receive_channel = trio.open_memory_channel[ChordalEvent | Shutdown](0)

    def _build_tables(self, translating: bool) -> TableSet:
        settings = self.settings
        return TableSet.build(
            global_bindings=settings.global_bindings,
            insert_bindings=settings.insert_bindings,
            command_bindings=settings.command_bindings,
            overlays=settings.overlays,
            leaders=settings.leaders,
            layout=self.layouts[settings.active_layout] if translating else None,
        )

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def overlay(self) -> typing.Optional[OverlayState]:
        return self.state.overlay

    def resolve(self, event: KeyEvent) -> ActionRef | Resolution:
        "Resolve against the current state without changing it."
        overlay_table = None if self.state.overlay is None else self.state.overlay.table
        result, _prefix = resolve(event, self.state.tables, self.state.mode, overlay_table, self.state.prefix)
        return result

    def describe_tables(self):
        return self.state.tables.describe()

    def _toggle_layout(self) -> bool:
        """Flip layout translation and return the new state.

        All tables are rebuilt before anything is swapped, so a rebuild that fails leaves the
        current tables in place. The overlay is settled afterwards like for any other action.
        """
        target = not self.state.translating
        tables = self._build_tables(target)
        self.state.tables = tables
        self.state.translating = target
        self.state.prefix = None
        self.timers.prefix.cancel()
        logger.info("Layout translation %s (%s)", "on" if target else "off", self.settings.active_layout)
        return target

    def _emit_indicator(self):
        indicator = self.indicators[self.state.indicator_state]
        self.indicator.value = indicator
        self.host.show_indicator(indicator)

    async def process(self, event: ChordalEvent) -> Processed:
        before = (self.state.mode, None if self.state.overlay is None else self.state.overlay.group)
        match event:
            case TimerFired():
                processed = await self._timer_fired(event)
            case KeyEvent() if event.is_escape:
                await self._escape()
                processed = Processed(event=event)
            case KeyEvent():
                processed = await self._key(event)
            case _:
                raise NotImplementedError(f"Don't know how to handle {type(event)}.")
        after = (self.state.mode, None if self.state.overlay is None else self.state.overlay.group)
        if after != before:
            self._emit_indicator()
        return processed

    async def _key(self, event: KeyEvent) -> Processed:
        if self.state.mode is Mode.INSERT:
            self.timers.insert.reset()
        overlay_table = None if self.state.overlay is None else self.state.overlay.table
        result, self.state.prefix = resolve(event, self.state.tables, self.state.mode, overlay_table, self.state.prefix)
        match result:
            case Resolution.PENDING:
                self.timers.prefix.reset()
                return Processed(event=event, result=result)
            case Resolution.UNBOUND:
                self.timers.prefix.cancel()
                await self.host.unhandled(event)
                return Processed(event=event, result=result)
        self.timers.prefix.cancel()
        failure = await self._run_action(result)
        return Processed(event=event, result=result, failure=failure)

    async def _run_action(self, action: ActionRef) -> typing.Optional[ActionExecutionFailure]:
        failure = None
        if action == TOGGLE_LAYOUT:
            self._toggle_layout()
        elif action not in BUILTIN_ACTIONS:
            result = await outcome.acapture(self.host.execute, action)
            if isinstance(result, outcome.Error):
                if not isinstance(result.error, Exception):
                    result.unwrap()
                failure = ActionExecutionFailure(action, result.error)
                logger.error("%s", failure, exc_info=result.error)

        # repeat membership depends on which action ran, not on whether it succeeded
        self._update_overlay(action)
        if action in self.insert_actions:
            self._enter_insert()
        elif action in self.command_actions:
            self._enter_command()
        return failure

    def _update_overlay(self, action: ActionRef):
        overlay = after_action(self.registry, self.state.tables, action, trio.current_time())
        if overlay is None:
            self._clear_overlay()
            return
        if self.state.overlay is None or self.state.overlay.group != overlay.group:
            logger.debug("Installing %s overlay", overlay.group)
        self.state.overlay = overlay
        self.timers.repeat.reset()

    def _clear_overlay(self):
        if self.state.overlay is not None:
            logger.debug("Clearing %s overlay", self.state.overlay.group)
            self.state.overlay = None
        self.timers.repeat.cancel()

    def _enter_insert(self):
        self._clear_overlay()
        self.timers.insert.reset()
        if self.state.mode is Mode.INSERT:
            return
        self.state.mode = Mode.INSERT
        logger.debug("Entered insert mode")
        self.notifier.notify(True)

    def _enter_command(self):
        if self.state.mode is Mode.COMMAND:
            return
        self.state.mode = Mode.COMMAND
        self.timers.insert.cancel()
        logger.debug("Entered command mode")
        self.notifier.notify(False)

    async def _escape(self):
        self.state.prefix = None
        self.timers.prefix.cancel()
        self._clear_overlay()
        if self.state.mode is Mode.INSERT:
            self._enter_command()
        elif self.host.selection_active():
            await self.host.clear_selection()

    async def _timer_fired(self, event: TimerFired) -> Processed:
        if not self.timers[event.kind].is_current(event):
            logger.debug("Discarding stale %s timer expiry", event.kind.name)
            return Processed(event=event)
        synthesized = KeyEvent.tap(ESCAPE)
        match event.kind:
            case TimerKind.INSERT if self.state.mode is Mode.INSERT:
                await self._escape()
                return Processed(event=event, synthesized=synthesized)
            case TimerKind.REPEAT if self.state.overlay is not None:
                if self.state.mode is Mode.INSERT:
                    # only the overlay expires; leaving insert mode is the insert timer's job
                    self._clear_overlay()
                    return Processed(event=event)
                await self._escape()
                return Processed(event=event, synthesized=synthesized)
            case TimerKind.PREFIX if self.state.prefix is not None:
                logger.debug("Abandoning prefix %r", self.state.prefix.tokens)
                self.state.prefix = None
        return Processed(event=event)

    async def run(self, *, task_status=trio.TASK_STATUS_IGNORED):
        async with trio.open_nursery() as nursery:
            await nursery.start(self.notifier.run)
            await nursery.start(self.timers.run, self.event_send_channel.clone())
            self._emit_indicator()
            task_status.started()
            async for event in self.event_receive_channel:
                if isinstance(event, Shutdown):
                    break
                await self.process(event)
            nursery.cancel_scope.cancel()
        logger.debug("Engine stopped")

    async def shutdown(self):
        "Stop run() once every event sent before this call has been processed."
        await self.event_send_channel.send(Shutdown())
