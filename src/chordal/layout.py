# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import logging
import typing

import msgspec

from .commontypes import InputFormatError, LayoutError
from .keys import Token, is_valid_base, tokenize

logger = logging.getLogger(__name__)


class LogicalKey(msgspec.Struct, frozen=True):
    base: str
    shifted: typing.Optional[str] = None

    @classmethod
    def parse(cls, label: str):
        parts = label.split()
        if len(parts) not in (1, 2):
            raise LayoutError(f"Logical key {label!r} must be a base label and an optional shifted label")
        for part in parts:
            if not is_valid_base(part):
                raise LayoutError(f"Logical key {label!r} contains unknown key {part!r}")
        return cls(*parts)

    @property
    def labels(self) -> tuple[str, ...]:
        if self.shifted is None:
            return (self.base,)
        return (self.base, self.shifted)


class LayoutTable(msgspec.Struct, frozen=True):
    """Mapping of logical key labels to the glyphs the physical keyboard produces for them.

    Built once from a declaration and never edited; a different layout means a different table.
    The mapping is injective, so every table has an inverse.
    """

    name: str
    glyphs: dict[str, str]

    @classmethod
    def build(cls, name: str, declaration: dict[str, list[str]]):
        glyphs: dict[str, str] = {}
        for label, targets in declaration.items():
            key = LogicalKey.parse(label)
            if len(targets) != len(key.labels):
                raise LayoutError(f"Layout {name}: {label!r} has {len(key.labels)} labels but {len(targets)} glyphs")
            for logical, glyph in zip(key.labels, targets):
                if not is_valid_base(glyph):
                    raise LayoutError(f"Layout {name}: {label!r} maps to unknown key {glyph!r}")
                if logical in glyphs:
                    raise LayoutError(f"Layout {name}: {logical!r} is declared twice")
                glyphs[logical] = glyph
        cls._check_injective(name, glyphs)
        logger.debug("Built layout %s covering %d keys", name, len(glyphs))
        return cls(name=name, glyphs=glyphs)

    @staticmethod
    def _check_injective(name: str, glyphs: dict[str, str]):
        seen: dict[str, str] = {}
        for logical, glyph in glyphs.items():
            if glyph in seen:
                raise LayoutError(f"Layout {name}: {seen[glyph]!r} and {logical!r} both map to {glyph!r}")
            seen[glyph] = logical

    def inverse(self):
        return LayoutTable(name=f"{self.name}-inverse", glyphs={v: k for k, v in self.glyphs.items()})

    def translate_token(self, token: Token) -> Token:
        glyph = self.glyphs.get(token.base)
        if glyph is None:
            return token
        return token.with_base(glyph)


def translate(chord: str, layout: typing.Optional[LayoutTable]) -> str:
    """Map every token of a chord through the layout, rejoining the tokens with single spaces.

    Tokens the layout does not cover pass through unchanged. Modifier-prefixed tokens keep their
    modifiers and translate their base key. A None layout only normalizes the chord.
    """
    try:
        tokens = tokenize(chord)
    except ValueError as exc:
        raise InputFormatError("layout" if layout is None else layout.name, chord, str(exc)) from exc
    if layout is not None:
        tokens = tuple(layout.translate_token(token) for token in tokens)
    return " ".join(str(token) for token in tokens)


def untranslate(chord: str, layout: LayoutTable) -> str:
    return translate(chord, layout.inverse())
