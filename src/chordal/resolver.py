# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import enum
import logging
import typing

import msgspec

from .bindings import BindingTable, Lookup, Suppressed, TableSet
from .commontypes import ActionRef, Mode
from .events import KeyEvent
from .keys import parse_token

logger = logging.getLogger(__name__)


class Resolution(enum.Enum):
    UNBOUND = enum.auto()
    PENDING = enum.auto()


class Prefix(msgspec.Struct, frozen=True):
    # leader is set while collecting tokens for a held leader key; only its own table is consulted
    tokens: tuple[str, ...]
    leader: typing.Optional[str] = None


Resolved = tuple[ActionRef | Resolution, typing.Optional[Prefix]]


def _walk(layers: list[BindingTable], tokens: tuple[str, ...], leader: typing.Optional[str]) -> Resolved:
    for table in layers:
        match table.lookup(tokens):
            case Lookup.ABSENT:
                continue
            case Lookup.PREFIX:
                return Resolution.PENDING, Prefix(tokens=tokens, leader=leader)
            case Suppressed():
                logger.debug("%r suppressed by %s table", tokens, table.name)
                return Resolution.UNBOUND, None
            case action:
                return action, None
    return Resolution.UNBOUND, None


def resolve(
    event: KeyEvent,
    tables: TableSet,
    mode: Mode,
    overlay: typing.Optional[BindingTable] = None,
    prefix: typing.Optional[Prefix] = None,
) -> Resolved:
    """Resolve one key event, returning the outcome and the prefix to carry into the next event.

    Tap events walk the overlay table (when there is one), then the table for the current mode,
    then the global table. The first table that knows the chord decides: an action, a Suppressed
    terminator (UNBOUND) or the start of a longer chord (PENDING). Hold events only ever open a
    leader's prefix table, and tokens following a hold only ever consult that table.
    """
    try:
        token = str(parse_token(event.key))
    except ValueError:
        logger.debug("Ignoring unparseable key %r", event.key)
        return Resolution.UNBOUND, None

    if event.held:
        if token not in tables.leaders:
            return Resolution.UNBOUND, None
        return Resolution.PENDING, Prefix(tokens=(), leader=token)

    if prefix is not None and prefix.leader is not None:
        leader_table = tables.leaders.get(prefix.leader)
        if leader_table is None:
            return Resolution.UNBOUND, None
        return _walk([leader_table], prefix.tokens + (token,), prefix.leader)

    tokens = (token,) if prefix is None else prefix.tokens + (token,)
    layers = [tables.modes[mode], tables.global_table]
    if overlay is not None:
        layers.insert(0, overlay)
    return _walk(layers, tokens, None)
