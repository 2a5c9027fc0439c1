# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import json
from datetime import timedelta

import pytest

from chordal.bindings import Binding
from chordal.commontypes import ConfigurationError, IndicatorState
from chordal.settings import Settings, format_duration, parse_duration


@pytest.mark.parametrize(
    "value,expected",
    (
        ("120s", timedelta(seconds=120)),
        ("2m", timedelta(minutes=2)),
        ("1m30s", timedelta(seconds=90)),
        ("500ms", timedelta(milliseconds=500)),
        ("1.5s", timedelta(milliseconds=1500)),
        ("1h", timedelta(hours=1)),
    ),
)
def test_parse_duration(value: str, expected: timedelta):
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ("", "5", "s", "1 m", "3d"))
def test_parse_duration_rejects(value: str):
    with pytest.raises(ValueError):
        parse_duration(value)


@pytest.mark.parametrize(
    "delta,expected",
    (
        (timedelta(seconds=120), "120s"),
        (timedelta(milliseconds=500), "0.5s"),
        (timedelta(), "0s"),
    ),
)
def test_format_duration(delta: timedelta, expected: str):
    assert format_duration(delta) == expected


def test_defaults():
    settings = Settings.for_test()
    assert settings.insert_timeout == timedelta(seconds=120)
    assert settings.repeat_timeout == timedelta(seconds=120)
    assert settings.prefix_timeout == timedelta(seconds=2)
    assert settings.active_layout == "dvorak"
    assert settings.translate is False
    assert set(settings.indicators) == set(IndicatorState)


def test_timeouts_accept_seconds():
    settings = Settings.for_test(insert_timeout=30, repeat_timeout=1.5)
    assert settings.insert_timeout == timedelta(seconds=30)
    assert settings.repeat_timeout == timedelta(seconds=1.5)


def test_short_and_long_binding_forms():
    settings = Settings.for_test(
        global_bindings={"Ctrl+s": "save-buffer"},
        command_bindings=[{"chord": "Ctrl+t", "action": "toggle-layout", "direct": True}],
    )
    assert settings.global_bindings == [Binding(chord="Ctrl+s", action="save-buffer")]
    assert settings.command_bindings == [Binding(chord="Ctrl+t", action="toggle-layout", direct=True)]


def test_null_action_is_suppressed():
    settings = Settings.for_test()
    (g,) = [b for b in settings.overlays["buffer-list-navigation"] if b.chord == "g"]
    assert g.action is None


def test_leaders():
    settings = Settings.for_test()
    f13 = settings.leaders[0]
    assert f13.key == "F13"
    assert f13.tap == "command-mode"
    assert Binding(chord="f", action="find-file") in f13.hold


def test_round_trip(tmp_path):
    path = tmp_path / "settings.json"
    settings = Settings.defaults(path, notify_command=["notify-mode", "{insert}"], repeat_timeout="90s")
    settings.save()
    raw = json.loads(path.read_text())
    assert "_path" not in raw
    assert raw["repeat_timeout"] == "90s"
    assert set(raw["indicators"]) == {"COMMAND", "INSERT", "REPEAT"}
    assert raw["overlays"]["buffer-list-navigation"][-1] == {"chord": "g", "action": None, "direct": False}

    loaded = Settings.load(path)
    assert loaded == Settings.defaults(path, notify_command=["notify-mode", "{insert}"], repeat_timeout="90s")


@pytest.mark.parametrize(
    "overrides,match",
    (
        ({"active_layout": "workman"}, "workman"),
        ({"indicators": {"COMMAND": ["●", "orange"], "INSERT": ["▲", "green"]}}, "REPEAT"),
        ({"indicators": {"COMMAND": ["●"], "INSERT": ["▲", "green"], "REPEAT": ["↻", "purple"]}}, "COMMAND"),
        ({"indicators": {"OVERTYPE": ["●", "orange"]}}, "Invalid settings"),
        ({"repeat_timeout": "soon"}, "Invalid settings"),
    ),
)
def test_invalid_settings(overrides, match):
    with pytest.raises(ConfigurationError, match=match):
        Settings.for_test(**overrides)


def test_invalid_json(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError, match="not valid JSON"):
        Settings.load(path)


def test_settings_file_is_utf8(tmp_path):
    path = tmp_path / "settings.json"
    Settings.defaults(path).save()
    raw = path.read_bytes()
    assert "↻".encode("utf-8") in raw
    assert Settings.load(path).indicators[IndicatorState.REPEAT] == ["↻", "purple"]
