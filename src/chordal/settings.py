# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import dataclasses
import datetime
import json
import operator
import pathlib
import re
import typing

import cattrs
import cattrs.gen

from .bindings import Binding, LeaderKey
from .commontypes import ConfigurationError, IndicatorState


def positional_layout(logical: str, logical_shifted: str, physical: str, physical_shifted: str):
    "Build a layout declaration from four strings that list the same key positions in the same order."
    if not len(logical) == len(logical_shifted) == len(physical) == len(physical_shifted):
        raise ValueError("positional layout strings must have equal length")
    return {f"{a} {b}": [c, d] for a, b, c, d in zip(logical, logical_shifted, physical, physical_shifted)}


QWERTY = "-=qwertyuiop[]asdfghjkl;'zxcvbnm,./"
QWERTY_SHIFTED = '_+QWERTYUIOP{}ASDFGHJKL:"ZXCVBNM<>?'

LAYOUTS = {
    "qwerty": positional_layout(QWERTY, QWERTY_SHIFTED, QWERTY, QWERTY_SHIFTED),
    "dvorak": positional_layout(
        QWERTY,
        QWERTY_SHIFTED,
        "[]',.pyfgcrl/=aoeuidhtns-;qjkxbmwvz",
        '{}"<>PYFGCRL?+AOEUIDHTNS_:QJKXBMWVZ',
    ),
    "colemak": positional_layout(
        QWERTY,
        QWERTY_SHIFTED,
        "-=qwfpgjluy;[]arstdhneio'zxcvbkm,./",
        '_+QWFPGJLUY:{}ARSTDHNEIO"ZXCVBKM<>?',
    ),
}

GLOBAL_BINDINGS = {
    "Ctrl+s": "save-buffer",
    "Ctrl+z": "undo",
}

INSERT_BINDINGS = {
    "Ctrl+a": "beginning-of-line",
    "Ctrl+e": "end-of-line",
}

COMMAND_BINDINGS = [
    {"chord": "h", "action": "backward-char"},
    {"chord": "j", "action": "next-line"},
    {"chord": "k", "action": "previous-line"},
    {"chord": "l", "action": "forward-char"},
    {"chord": "w", "action": "forward-word"},
    {"chord": "b", "action": "backward-word"},
    {"chord": "i", "action": "insert-mode"},
    {"chord": "a", "action": "insert-after"},
    {"chord": "o", "action": "open-line-below"},
    {"chord": "x", "action": "delete-char"},
    {"chord": "u", "action": "undo"},
    {"chord": "g g", "action": "beginning-of-buffer"},
    {"chord": "G", "action": "end-of-buffer"},
    {"chord": "g t", "action": "next-buffer"},
    {"chord": "g T", "action": "previous-buffer"},
    {"chord": "Ctrl+t", "action": "toggle-layout", "direct": True},
]

OVERLAYS = {
    "line-navigation": {
        "j": "next-line",
        "k": "previous-line",
    },
    "word-navigation": {
        "w": "forward-word",
        "b": "backward-word",
    },
    "buffer-list-navigation": {
        "t": "next-buffer",
        "T": "previous-buffer",
        "n": "next-buffer",
        "p": "previous-buffer",
        # keep "g" from opening a two-key chord while cycling buffers
        "g": None,
    },
}

REPEAT_GROUPS = {
    "line-navigation": ["next-line", "previous-line"],
    "word-navigation": ["forward-word", "backward-word"],
    "buffer-list-navigation": ["next-buffer", "previous-buffer"],
}

LEADERS = [
    {
        "key": "F13",
        "tap": "command-mode",
        "hold": {"f": "find-file", "s": "save-buffer", "b": "switch-buffer", "n": "next-buffer", "p": "previous-buffer"},
    },
    {
        "key": "F14",
        "tap": "insert-mode",
        "hold": {"w": "forward-word", "b": "backward-word", "d": "kill-word", "j": "next-line", "k": "previous-line"},
    },
]

INDICATORS = {
    "COMMAND": ["●", "orange"],
    "INSERT": ["▲", "green"],
    "REPEAT": ["↻", "purple"],
}

DURATION_UNITS = {
    "ms": datetime.timedelta(milliseconds=1),
    "s": datetime.timedelta(seconds=1),
    "m": datetime.timedelta(minutes=1),
    "h": datetime.timedelta(hours=1),
}
DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")


def parse_duration(value: str) -> datetime.timedelta:
    if not re.fullmatch(f"(?:{DURATION_PART.pattern})+", value):
        raise ValueError(f"Invalid duration string {value!r}")
    return sum(
        (float(number) * DURATION_UNITS[unit] for number, unit in DURATION_PART.findall(value)),
        datetime.timedelta(),
    )


def format_duration(value: datetime.timedelta) -> str:
    seconds = value.total_seconds()
    return f"{int(seconds) if seconds.is_integer() else seconds}s"


def timedelta_seconds(seconds: datetime.timedelta | int | float | str):
    if isinstance(seconds, datetime.timedelta):
        return seconds
    if isinstance(seconds, (int, float)):
        return datetime.timedelta(seconds=seconds)
    return parse_duration(seconds)


settings_converter = cattrs.Converter()
settings_converter.register_unstructure_hook(datetime.timedelta, format_duration)
settings_converter.register_structure_hook(datetime.timedelta, lambda d, _: timedelta_seconds(d))
settings_converter.register_unstructure_hook(IndicatorState, operator.attrgetter("name"))
settings_converter.register_structure_hook(IndicatorState, lambda v, _: IndicatorState[v])


def structure_bindings(raw: dict | list, typ):
    # a plain mapping is the short form: chord to action, translated, in declaration order
    if isinstance(raw, dict):
        return [Binding(chord=chord, action=action) for chord, action in raw.items()]
    return [settings_converter.structure(item, Binding) for item in raw]


settings_converter.register_structure_hook_func(lambda t: t == list[Binding], structure_bindings)


@dataclasses.dataclass(kw_only=True)
class Settings:
    _path: pathlib.Path
    layouts: dict[str, dict[str, list[str]]]
    active_layout: str
    translate: bool
    global_bindings: list[Binding]
    insert_bindings: list[Binding]
    command_bindings: list[Binding]
    overlays: dict[str, list[Binding]]
    repeat_groups: dict[str, list[str]]
    leaders: list[LeaderKey]
    insert_actions: list[str]
    command_actions: list[str]
    insert_timeout: datetime.timedelta
    repeat_timeout: datetime.timedelta
    prefix_timeout: datetime.timedelta
    notify_command: typing.Optional[list[str]]
    indicators: dict[IndicatorState, list[str]]

    def validate(self):
        if self.active_layout not in self.layouts:
            raise ConfigurationError(f"Unknown active layout {self.active_layout!r}")
        missing = [state.name for state in IndicatorState if state not in self.indicators]
        if missing:
            raise ConfigurationError(f"No indicator configured for {', '.join(missing)}")
        for state, pair in self.indicators.items():
            if len(pair) != 2:
                raise ConfigurationError(f"Indicator {state.name} must be [glyph, color]")

    def save(self, dest: typing.Optional[pathlib.Path] = None):
        if dest is None:
            dest = self._path
        raw = settings_converter.unstructure(self)
        del raw["_path"]
        with dest.open("w", encoding="utf-8") as outfile:
            json.dump(raw, outfile, indent=2, ensure_ascii=False)

    @classmethod
    def load(cls, src: pathlib.Path):
        with src.open(encoding="utf-8") as infile:
            try:
                raw = json.load(infile)
            except json.JSONDecodeError as exc:
                raise ConfigurationError(f"{src} is not valid JSON: {exc}") from exc
        raw["_path"] = src
        return cls.from_raw(raw)

    @classmethod
    def from_raw(cls, raw: dict):
        try:
            settings = settings_converter.structure(raw, cls)
        except cattrs.BaseValidationError as exc:
            raise ConfigurationError("Invalid settings: " + "; ".join(cattrs.transform_error(exc))) from exc
        settings.validate()
        return settings

    @classmethod
    def defaults(cls, path: pathlib.Path, **overrides):
        raw = {
            "_path": path,
            "layouts": LAYOUTS,
            "active_layout": "dvorak",
            "translate": False,
            "global_bindings": GLOBAL_BINDINGS,
            "insert_bindings": INSERT_BINDINGS,
            "command_bindings": COMMAND_BINDINGS,
            "overlays": OVERLAYS,
            "repeat_groups": REPEAT_GROUPS,
            "leaders": LEADERS,
            "insert_actions": ["insert-after", "open-line-below"],
            "command_actions": [],
            "insert_timeout": "120s",
            "repeat_timeout": "120s",
            "prefix_timeout": "2s",
            "notify_command": None,
            "indicators": INDICATORS,
        }
        raw.update(overrides)
        return cls.from_raw(raw)

    @classmethod
    def for_test(cls, **overrides):
        return cls.defaults(pathlib.Path("test.settings.json"), **overrides)


settings_converter.register_structure_hook(Settings, cattrs.gen.make_dict_structure_fn(Settings, settings_converter))
