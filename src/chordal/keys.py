# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
"""Chord grammar.

A chord is a whitespace-separated sequence of tokens. Each token is one of:

- a single printable, non-whitespace character, such as ``a`` or ``;``
- a named key, such as ``Return`` or ``F13``
- a modifier-prefixed token, such as ``Ctrl+x`` or ``Alt+Shift+Tab``

Modifiers are always rendered in the canonical order of MODIFIERS, so ``Shift+Ctrl+x`` and
``Ctrl+Shift+x`` name the same token.
"""
import msgspec

NAMED_KEYS = frozenset(
    ["Return", "Delete", "Backspace", "Space", "Tab", "Escape", "Up", "Down", "Left", "Right"]
    + [f"F{n}" for n in range(1, 25)]
)

MODIFIERS = ("Ctrl", "Alt", "Meta", "Shift")

ESCAPE = "Escape"


class Token(msgspec.Struct, frozen=True):
    base: str
    modifiers: tuple[str, ...] = ()

    def __str__(self):
        return "+".join(self.modifiers + (self.base,))

    def with_base(self, base: str):
        return msgspec.structs.replace(self, base=base)


def is_valid_base(base: str):
    if base in NAMED_KEYS:
        return True
    return len(base) == 1 and base.isprintable() and not base.isspace()


def parse_token(text: str) -> Token:
    "Parse one chord token, raising ValueError with a human-readable reason if it is malformed."
    remainder = text
    found = set()
    while True:
        for modifier in MODIFIERS:
            prefix = modifier + "+"
            if remainder.startswith(prefix) and len(remainder) > len(prefix):
                if modifier in found:
                    raise ValueError(f"modifier {modifier} repeated in {text!r}")
                found.add(modifier)
                remainder = remainder[len(prefix) :]
                break
        else:
            break
    if not is_valid_base(remainder):
        if remainder == "":
            raise ValueError("empty token")
        raise ValueError(f"unknown key {remainder!r}")
    return Token(base=remainder, modifiers=tuple(m for m in MODIFIERS if m in found))


def tokenize(chord: str) -> tuple[Token, ...]:
    tokens = tuple(parse_token(part) for part in chord.split())
    if not tokens:
        raise ValueError("empty chord")
    return tokens
