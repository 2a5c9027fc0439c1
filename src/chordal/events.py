# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import enum

import msgspec

from .keys import ESCAPE


class KeyEvent(msgspec.Struct, frozen=True):
    # held is decided upstream; a leader key arrives either as a tap or as a hold, never both
    key: str
    held: bool = False

    @classmethod
    def tap(cls, key: str):
        return cls(key=key)

    @classmethod
    def hold(cls, key: str):
        return cls(key=key, held=True)

    @property
    def is_escape(self):
        return self.key == ESCAPE and not self.held

    @classmethod
    def parse(cls, line: str):
        "Parse the replay format: one token per line, with hold events written as hold:KEY."
        text = line.strip()
        if text.startswith("hold:"):
            return cls.hold(text.removeprefix("hold:"))
        return cls.tap(text)


class TimerKind(enum.Enum):
    INSERT = enum.auto()
    REPEAT = enum.auto()
    PREFIX = enum.auto()


class TimerFired(msgspec.Struct, frozen=True):
    kind: TimerKind
    generation: int


ChordalEvent = KeyEvent | TimerFired
