# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import argparse
import collections.abc
import json
import logging
import pathlib
import sys
import typing

import trio

from .commontypes import ChordalError
from .engine import Engine
from .events import KeyEvent
from .host import Host, LoggingHost
from .settings import Settings

logger = logging.getLogger(__name__)


async def feed_lines(engine: Engine, lines: collections.abc.AsyncIterable[str]):
    async with engine.event_send_channel.clone() as send_channel:
        async for line in lines:
            if not line.strip() or line.lstrip().startswith("#"):
                continue
            await send_channel.send(KeyEvent.parse(line))
        await engine.shutdown()


async def replay_file(path: pathlib.Path):
    async with await trio.open_file(path) as infile:
        async for line in infile:
            yield line


async def start_chordal(settings: Settings, replay: typing.Optional[pathlib.Path], host: typing.Optional[Host] = None):
    engine = Engine(settings, LoggingHost() if host is None else host)
    lines = trio.wrap_file(sys.stdin) if replay is None else replay_file(replay)
    async with trio.open_nursery() as nursery:
        await nursery.start(engine.run)
        nursery.start_soon(feed_lines, engine, lines)
    return engine


parser = argparse.ArgumentParser(prog="chordal", description="Modal key engine with repeatable command overlays.")
parser.add_argument("settings", type=pathlib.Path)
parser.add_argument("--replay", type=pathlib.Path, help="read key events from this file instead of stdin")
parser.add_argument("--init", action="store_true", help="write the default settings to SETTINGS and exit")
parser.add_argument("--dump-tables", action="store_true", help="print every binding table and exit")
parser.add_argument("-v", "--verbose", action="store_true")


def main(argv=sys.argv):
    """
    Args:
        argv (list): List of arguments

    Returns:
        int: A return code
    """
    parsed = parser.parse_args(argv[1:])
    logging.basicConfig(level=logging.DEBUG if parsed.verbose else logging.INFO)

    if parsed.init:
        Settings.defaults(parsed.settings).save()
        logger.info("Wrote default settings to %s", parsed.settings)
        return 0

    try:
        settings = Settings.load(parsed.settings)
        if parsed.dump_tables:
            engine = Engine(settings, LoggingHost())
            json.dump(engine.describe_tables(), sys.stdout, indent=2, ensure_ascii=False)
            print()
            return 0
        trio.run(start_chordal, settings, parsed.replay)
    except ChordalError as exc:
        logger.error("%s", exc)
        return 1
    return 0
