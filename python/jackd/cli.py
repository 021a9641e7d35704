"""Command-line interface for talking to a beanstalkd server."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Optional

from .client import JackdClient
from .commands import Job
from .config import ClientSettings
from .protocol import JackdError


LOG = logging.getLogger("jackd.cli")


def _build_parser(settings: ClientSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jackd", description="beanstalkd command line client")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--read-size", type=int, default=settings.read_size)
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument("--tube", help="tube to use before running the command")
    parser.add_argument("--watch", action="append", default=[], help="tube to watch (repeatable)")

    sub = parser.add_subparsers(dest="command", required=True)

    put = sub.add_parser("put", help="submit a job")
    put.add_argument("payload")
    put.add_argument("--priority", type=int)
    put.add_argument("--delay", type=int)
    put.add_argument("--ttr", type=int)

    reserve = sub.add_parser("reserve", help="reserve the next ready job")
    reserve.add_argument("--timeout", type=int)

    for name in ("delete", "touch", "peek", "kick-job"):
        sub.add_parser(name).add_argument("id")

    release = sub.add_parser("release")
    release.add_argument("id")
    release.add_argument("--priority", type=int)
    release.add_argument("--delay", type=int)

    bury = sub.add_parser("bury")
    bury.add_argument("id")
    bury.add_argument("--priority", type=int)

    for name in ("use", "watch", "ignore"):
        sub.add_parser(name).add_argument("name")

    kick = sub.add_parser("kick")
    kick.add_argument("bound", type=int)

    pause = sub.add_parser("pause-tube")
    pause.add_argument("name")
    pause.add_argument("--delay", type=int)

    for name in ("peek-ready", "peek-delayed", "peek-buried", "list-tube-used"):
        sub.add_parser(name)

    return parser


async def _dispatch(client: JackdClient, args: argparse.Namespace) -> Any:
    command = args.command
    if command == "put":
        return await client.put(args.payload, priority=args.priority, delay=args.delay, ttr=args.ttr)
    if command == "reserve":
        if args.timeout is None:
            return await client.reserve()
        return await client.reserve_with_timeout(args.timeout)
    if command == "delete":
        return await client.delete(args.id)
    if command == "touch":
        return await client.touch(args.id)
    if command == "peek":
        return await client.peek(args.id)
    if command == "kick-job":
        return await client.kick_job(args.id)
    if command == "release":
        return await client.release(args.id, priority=args.priority, delay=args.delay)
    if command == "bury":
        return await client.bury(args.id, priority=args.priority)
    if command == "use":
        return await client.use(args.name)
    if command == "watch":
        return await client.watch(args.name)
    if command == "ignore":
        return await client.ignore(args.name)
    if command == "kick":
        return await client.kick(args.bound)
    if command == "pause-tube":
        return await client.pause_tube(args.name, delay=args.delay)
    if command == "peek-ready":
        return await client.peek_ready()
    if command == "peek-delayed":
        return await client.peek_delayed()
    if command == "peek-buried":
        return await client.peek_buried()
    if command == "list-tube-used":
        return await client.list_tube_used()
    raise ValueError(f"unknown command {command!r}")


def _render(result: Any) -> Optional[str]:
    if isinstance(result, Job):
        return f"{result.id}\t{result.body.decode('utf-8', errors='replace')}"
    if result is None:
        return None
    return str(result)


async def amain(args: argparse.Namespace, client: Optional[JackdClient] = None) -> Any:
    client = client or JackdClient(args.host, args.port, read_size=args.read_size)
    if not client.is_connected():
        await client.connect()
    try:
        if args.tube:
            await client.use(args.tube)
        for tube in args.watch:
            await client.watch(tube)
        return await _dispatch(client, args)
    finally:
        await client.quit()


def main(argv: list[str] | None = None) -> int:
    try:
        settings = ClientSettings.from_env()
    except ValueError as exc:
        print(f"error: invalid configuration: {exc}", file=sys.stderr)
        return 2
    args = _build_parser(settings).parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING))

    try:
        result = asyncio.run(amain(args))
    except JackdError as exc:
        LOG.debug("Command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        LOG.info("Interrupted")
        return 130

    output = _render(result)
    if output is not None:
        print(output)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    sys.exit(main())
