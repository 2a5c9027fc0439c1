# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import pytest

from chordal.events import KeyEvent
from chordal.keys import Token, parse_token, tokenize


@pytest.mark.parametrize(
    "text,expected",
    (
        ("a", Token(base="a")),
        (";", Token(base=";")),
        ("+", Token(base="+")),
        ("Return", Token(base="Return")),
        ("F13", Token(base="F13")),
        ("Ctrl+x", Token(base="x", modifiers=("Ctrl",))),
        ("Ctrl++", Token(base="+", modifiers=("Ctrl",))),
        ("Shift+Alt+Tab", Token(base="Tab", modifiers=("Alt", "Shift"))),
    ),
)
def test_parse_token(text: str, expected: Token):
    assert parse_token(text) == expected


@pytest.mark.parametrize(
    "text,msg",
    (
        ("", "empty token"),
        ("ab", "unknown key 'ab'"),
        ("Hyper+x", "unknown key 'Hyper+x'"),
        ("Ctrl+Ctrl+x", "modifier Ctrl repeated in 'Ctrl+Ctrl+x'"),
        ("F25", "unknown key 'F25'"),
    ),
)
def test_parse_token_invalid(text: str, msg: str):
    with pytest.raises(ValueError) as excinfo:
        parse_token(text)
    assert excinfo.value.args[0] == msg


def test_canonical_modifier_order():
    assert [str(token) for token in tokenize("Shift+Ctrl+x   g\tg")] == ["Ctrl+Shift+x", "g", "g"]
    assert str(tokenize("Meta+Alt+a")[0]) == "Alt+Meta+a"


def test_empty_chord():
    with pytest.raises(ValueError):
        tokenize("   ")


def test_key_event_parse():
    assert KeyEvent.parse("a\n") == KeyEvent(key="a")
    assert KeyEvent.parse("hold:F13") == KeyEvent(key="F13", held=True)
    assert KeyEvent.parse("Escape").is_escape
    assert not KeyEvent.hold("Escape").is_escape
