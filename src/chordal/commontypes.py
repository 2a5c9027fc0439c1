# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import enum

import msgspec

ActionRef = str


class Mode(enum.Enum):
    INSERT = enum.auto()
    COMMAND = enum.auto()


class IndicatorState(enum.Enum):
    COMMAND = enum.auto()
    INSERT = enum.auto()
    REPEAT = enum.auto()

    @classmethod
    def project(cls, mode: Mode, overlay_active: bool):
        if overlay_active:
            return cls.REPEAT
        match mode:
            case Mode.INSERT:
                return cls.INSERT
            case Mode.COMMAND:
                return cls.COMMAND


class Indicator(msgspec.Struct, frozen=True):
    state: IndicatorState
    glyph: str
    color: str


class ChordalError(Exception):
    pass


class InputFormatError(ChordalError):
    def __init__(self, table: str, entry: str, reason: str):
        super().__init__(f"Malformed chord {entry!r} in {table} table: {reason}")
        self.table = table
        self.entry = entry
        self.reason = reason


class LayoutError(ChordalError):
    pass


class ConfigurationError(ChordalError):
    pass


class ActionExecutionFailure(ChordalError):
    def __init__(self, action: ActionRef, cause: BaseException):
        super().__init__(f"Action {action!r} failed: {cause!r}")
        self.action = action
        self.cause = cause
