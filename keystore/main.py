"""
Keystore command line.

Usage:
    python -m keystore --sql-url ... --redis-url ... get KEY
    python -m keystore set KEY VALUE
    python -m keystore delete KEY
    python -m keystore keys
    python -m keystore flush [--temp]

Addresses default to KEYSTORE_SQL_URL / KEYSTORE_REDIS_URL.
"""
import argparse
import asyncio
import sys
from typing import Iterable, Optional

from keystore.config import KeystoreSettings, load_settings
from keystore.exceptions import ConfigurationError
from keystore.keystore import Keystore
from keystore.lifecycle import ShutdownHook, closing
from keystore.models.events import FlushScope
from keystore.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="keystore")

    parser.add_argument(
        "--sql-url",
        default=None,
        help="Durable store URL (overrides KEYSTORE_SQL_URL env).",
    )
    parser.add_argument(
        "--redis-url",
        default=None,
        help="Redis URL (overrides KEYSTORE_REDIS_URL env).",
    )
    parser.add_argument(
        "--table",
        default=None,
        help="SQL table name (overrides KEYSTORE_SQL_TABLE env).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Log every step of each operation.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    get = commands.add_parser("get", help="Print the value of KEY.")
    get.add_argument("key")

    set_ = commands.add_parser("set", help="Store VALUE under KEY.")
    set_.add_argument("key")
    set_.add_argument("value")

    delete = commands.add_parser("delete", help="Delete KEY from both tiers.")
    delete.add_argument("key")

    commands.add_parser("keys", help="List keys held by the durable store.")

    flush = commands.add_parser("flush", help="Flush the cache.")
    flush.add_argument(
        "--temp",
        action="store_true",
        help="Only flush keys under the temporary prefix.",
    )

    return parser.parse_args(argv)


async def run_command(keystore: Keystore, args: argparse.Namespace) -> int:
    """Execute one parsed command against a connected keystore."""
    if args.command == "get":
        value = await keystore.get(args.key)
        if value is None:
            return EXIT_FAILURE
        print(value)
        return EXIT_OK

    if args.command == "set":
        return EXIT_OK if await keystore.set(args.key, args.value) else EXIT_FAILURE

    if args.command == "delete":
        return EXIT_OK if await keystore.delete(args.key) else EXIT_FAILURE

    if args.command == "keys":
        for key in await keystore.list_keys():
            print(key)
        return EXIT_OK

    if args.command == "flush":
        scope = FlushScope.TEMP if args.temp else FlushScope.ALL
        result = await keystore.flush(scope)
        if scope is FlushScope.TEMP:
            print(result)
            return EXIT_OK
        return EXIT_OK if result else EXIT_FAILURE

    raise ValueError(f"Unknown command: {args.command}")


async def main(args: argparse.Namespace, settings: KeystoreSettings) -> int:
    """Connect, run the command and always disconnect."""
    keystore = Keystore(settings)

    hook = ShutdownHook(keystore)
    hook.install()

    try:
        async with closing(keystore):
            if not keystore.is_ready:
                logger.error("keystore_not_ready")
                return EXIT_FAILURE
            return await run_command(keystore, args)
    finally:
        hook.uninstall()


def start(argv: Optional[Iterable[str]] = None) -> int:
    """Process entrypoint."""
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    try:
        settings = load_settings(
            sql_url=args.sql_url,
            redis_url=args.redis_url,
            sql_table=args.table,
            debug=args.debug,
            log_level=args.log_level,
        )
    except ConfigurationError as e:
        print(e.message, file=sys.stderr)
        return EXIT_USAGE

    # stdout carries command output only
    setup_logging(level=settings.effective_log_level, stream=sys.stderr)

    return asyncio.run(main(args, settings))


if __name__ == "__main__":
    raise SystemExit(start())
