# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import pytest
import trio

from chordal.commontypes import Indicator
from chordal.engine import Engine
from chordal.host import Host
from chordal.settings import Settings


class RecordingHost(Host):
    def __init__(self):
        self.executed = []
        self.unhandled_events = []
        self.indicators: list[Indicator] = []
        self.selection = False
        self.selection_clears = 0
        self.failing = set()

    async def execute(self, action):
        await trio.lowlevel.checkpoint()
        self.executed.append(action)
        if action in self.failing:
            raise RuntimeError(f"{action} went wrong")

    def selection_active(self):
        return self.selection

    async def clear_selection(self):
        await trio.lowlevel.checkpoint()
        self.selection = False
        self.selection_clears += 1

    async def unhandled(self, event):
        await trio.lowlevel.checkpoint()
        self.unhandled_events.append(event)

    def show_indicator(self, indicator):
        self.indicators.append(indicator)


@pytest.fixture
def host():
    return RecordingHost()


@pytest.fixture
def make_engine(host):
    def factory(**overrides):
        return Engine(Settings.for_test(**overrides), host)

    return factory
