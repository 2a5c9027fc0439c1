# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import collections.abc
import dataclasses
import enum
import logging
import typing

import msgspec
import pygtrie

from .commontypes import ActionRef, InputFormatError, Mode
from .layout import LayoutTable, translate

logger = logging.getLogger(__name__)


class Suppressed(msgspec.Struct, frozen=True):
    pass


SUPPRESSED = Suppressed()


class Lookup(enum.Enum):
    ABSENT = enum.auto()
    PREFIX = enum.auto()


@dataclasses.dataclass(frozen=True)
class Binding:
    chord: str
    # None declares the chord Suppressed: it stops resolution without falling through
    action: typing.Optional[ActionRef]
    direct: bool = False


@dataclasses.dataclass(frozen=True)
class LeaderKey:
    key: str
    tap: typing.Optional[ActionRef] = None
    hold: list[Binding] = dataclasses.field(default_factory=list)


class BindingTable:
    """An immutable chord trie.

    Keys are tuples of canonical tokens, so a multi-token chord is a path through the trie and
    every strict prefix of a bound chord is a node without a value.
    """

    def __init__(self, name: str, trie: pygtrie.Trie):
        self.name = name
        self._trie = trie

    @classmethod
    def build(cls, name: str, declarations: collections.abc.Iterable[Binding], layout: typing.Optional[LayoutTable]):
        trie = pygtrie.Trie()
        for binding in declarations:
            try:
                chord = translate(binding.chord, None if binding.direct else layout)
            except InputFormatError as exc:
                raise InputFormatError(name, binding.chord, exc.reason) from exc
            key = tuple(chord.split())
            if key in trie:
                logger.warning("%s: %r is bound more than once; keeping %r", name, binding.chord, binding.action)
            if trie.has_subtrie(key):
                logger.warning("%s: %r shadows longer chords starting with it", name, binding.chord)
            shadowing = trie.shortest_prefix(key)
            if shadowing and shadowing.key != key:
                logger.warning("%s: %r is unreachable behind %r", name, binding.chord, " ".join(shadowing.key))
            trie[key] = SUPPRESSED if binding.action is None else binding.action
        return cls(name, trie)

    def lookup(self, tokens: tuple[str, ...]) -> ActionRef | Suppressed | Lookup:
        node = self._trie.has_node(tokens)
        if node & pygtrie.Trie.HAS_VALUE:
            return self._trie[tokens]
        if node & pygtrie.Trie.HAS_SUBTRIE:
            return Lookup.PREFIX
        return Lookup.ABSENT

    def describe(self) -> dict[str, typing.Optional[ActionRef]]:
        return {" ".join(k): (None if v is SUPPRESSED else v) for k, v in sorted(self._trie.items())}

    def __len__(self):
        return len(self._trie)

    def __repr__(self):
        return f"<BindingTable {self.name} ({len(self)} chords)>"


class TableSet(msgspec.Struct, frozen=True):
    """Every binding table the resolver can consult, built together for one layout choice."""

    global_table: BindingTable
    modes: dict[Mode, BindingTable]
    overlays: dict[str, BindingTable]
    leaders: dict[str, BindingTable]
    layout: typing.Optional[LayoutTable]

    @classmethod
    def build(
        cls,
        *,
        global_bindings: list[Binding],
        insert_bindings: list[Binding],
        command_bindings: list[Binding],
        overlays: dict[str, list[Binding]],
        leaders: list[LeaderKey],
        layout: typing.Optional[LayoutTable],
    ):
        leader_taps = []
        leader_tables = {}
        for leader in leaders:
            try:
                leader_key = translate(leader.key, None)
            except InputFormatError as exc:
                raise InputFormatError("leader", leader.key, exc.reason) from exc
            if leader.tap is not None:
                leader_taps.append(Binding(chord=leader_key, action=leader.tap, direct=True))
            leader_tables[leader_key] = BindingTable.build(f"leader {leader_key}", leader.hold, layout)

        return cls(
            global_table=BindingTable.build("global", list(global_bindings) + leader_taps, layout),
            modes={
                Mode.INSERT: BindingTable.build("insert", insert_bindings, layout),
                Mode.COMMAND: BindingTable.build("command", command_bindings, layout),
            },
            overlays={group: BindingTable.build(f"overlay {group}", bindings, layout) for group, bindings in overlays.items()},
            leaders=leader_tables,
            layout=layout,
        )

    def describe(self) -> dict[str, dict[str, typing.Optional[ActionRef]]]:
        tables = [self.global_table, *self.modes.values(), *self.overlays.values(), *self.leaders.values()]
        return {table.name: table.describe() for table in tables}
