"""
Command line front end: publish one message or test a connection.
"""

import argparse
import asyncio
import logging
import sys
from typing import Dict, List, Optional

from rich.console import Console

from pulsar_producer.bus import EventBus
from pulsar_producer.config import ProducerConfig, get_settings
from pulsar_producer.exceptions import PulsarPublishError
from pulsar_producer.publisher import Publisher

console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s | Thread-(%(threadName)s) | %(name)s | %(levelname)s | %(message)s"


def parse_pairs(values: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated key=value arguments."""
    pairs = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"expected key=value, got '{item}'")
        pairs[key.strip()] = value
    return pairs


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="pulsar-producer", description="Publish a message to a Pulsar topic")
    parser.add_argument("connection_string", help="e.g. pulsar://localhost:6650/persistent/public/default/topic")
    parser.add_argument("message", nargs="*", help="Message text; words are joined with spaces")
    parser.add_argument("--name", default=settings.name, help=f"Producer name (default: {settings.name})")
    parser.add_argument(
        "--timeout", type=int, default=settings.timeout, help=f"Timeout in seconds (default: {settings.timeout})"
    )
    parser.add_argument("--producer-property", action="append", metavar="KEY=VALUE", help="Producer property")
    parser.add_argument("--key", help="Message key")
    parser.add_argument("--ordering-key", help="Message ordering key")
    parser.add_argument("--property", action="append", metavar="KEY=VALUE", help="Message property")
    parser.add_argument("--jwt", help="Raw JWT or path to a JWT file")
    parser.add_argument("--allow-unverified", action="store_true", help="Ignore JWT verification errors")
    parser.add_argument("--username", help="Basic auth username")
    parser.add_argument("--password", help="Basic auth password")
    parser.add_argument("--test", action="store_true", help="Test the connection instead of publishing")
    parser.add_argument("--verbose", action="store_true", help="Print every status record")
    return parser


def create_publisher(args: argparse.Namespace) -> Publisher:
    config = ProducerConfig(
        timeout_seconds=args.timeout,
        name=args.name,
        properties=parse_pairs(args.producer_property),
    )
    publisher = Publisher(args.connection_string, config)
    if args.jwt:
        publisher.set_jwt(args.jwt, args.allow_unverified)
    elif args.username or args.password:
        publisher.set_basic_auth(args.username, args.password)
    return publisher


def message_options(args: argparse.Namespace) -> Dict[str, object]:
    options: Dict[str, object] = {"properties": parse_pairs(args.property)}
    if args.key is not None:
        options["key"] = args.key
    if args.ordering_key is not None:
        options["ordering_key"] = args.ordering_key
    return options


async def run(args: argparse.Namespace) -> int:
    publisher = create_publisher(args)

    bus = EventBus()
    if args.verbose:
        bus.on("error", lambda err: console.print(f"[yellow]pulsar-publish reported: {err}[/yellow]"))
        bus.on("end", lambda info: console.print(f"[green]✓ {info}[/green]"))

    if args.test:
        success = await publisher.test(bus=bus)
        print("true" if success else "false")
        return 0 if success else 1

    message_id = await publisher.publish(" ".join(args.message), message_options(args), bus)
    print(message_id)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        format=LOG_FORMAT,
        level=logging.DEBUG if args.verbose else get_settings().log_level.upper(),
    )

    if not args.test and not args.message:
        parser.error("a message is required unless --test is given")

    try:
        return asyncio.run(run(args))
    except (PulsarPublishError, argparse.ArgumentTypeError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
