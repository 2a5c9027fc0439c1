# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
"""Repeatable actions and the transient overlay they keep alive.

Each overlay group owns a disjoint set of actions. Running any action of a group installs that
group's overlay table, so the next step of the chain is a single key without a prefix; running an
action outside the group drops the overlay again.
"""
from __future__ import annotations

import collections.abc
import logging
import typing

import msgspec

from .bindings import BindingTable, TableSet
from .commontypes import ActionRef, ConfigurationError

logger = logging.getLogger(__name__)


class OverlayState(msgspec.Struct, frozen=True):
    group: str
    table: BindingTable
    last_activity: float


class RepeatRegistry:
    def __init__(self, groups: collections.abc.Mapping[str, collections.abc.Iterable[ActionRef]]):
        membership: dict[ActionRef, str] = {}
        for group, actions in groups.items():
            for action in actions:
                previous = membership.setdefault(action, group)
                if previous != group:
                    raise ConfigurationError(f"Action {action!r} is repeatable in both {previous!r} and {group!r}")
        self._membership = membership
        self.groups = frozenset(groups)

    def lookup(self, action: ActionRef) -> typing.Optional[str]:
        return self._membership.get(action)

    def check_tables(self, tables: TableSet):
        missing = sorted(self.groups - tables.overlays.keys())
        if missing:
            raise ConfigurationError(f"Repeat groups without an overlay table: {', '.join(missing)}")
        for group in sorted(tables.overlays.keys() - self.groups):
            logger.warning("Overlay table %r has no repeatable actions and will never be installed", group)


def after_action(
    registry: RepeatRegistry,
    tables: TableSet,
    action: ActionRef,
    now: float,
) -> typing.Optional[OverlayState]:
    "Return the overlay that should be active once action has run; None means no overlay."
    group = registry.lookup(action)
    if group is None:
        return None
    return OverlayState(group=group, table=tables.overlays[group], last_activity=now)

