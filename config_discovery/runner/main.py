"""Command line runner for the config discovery client."""

import argparse
import asyncio
import signal
import sys

import structlog

from ..client.discovery import ConfigDiscovery
from ..config.settings import load_settings
from ..snapshot.builder import Snapshot

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Config discovery client")
    parser.add_argument("--url", default=None, help="Config discovery base URL")
    parser.add_argument("--config", default=None, help="Configuration file path")
    parser.add_argument(
        "--asset", default=None, help="Print markets of this base asset on updates"
    )
    parser.add_argument(
        "--once", action="store_true", help="Fetch once, print a summary and exit"
    )
    return parser


def summarize(snapshot: Snapshot, asset: str | None = None) -> list[str]:
    """Human readable lines describing a snapshot."""
    lines = [
        f"Config composed at {snapshot.composed_at}: "
        f"{len(snapshot.markets_by_address)} markets, "
        f"{len(snapshot.vaults_by_address)} vaults, "
        f"{len(snapshot.assets_by_name)} assets"
    ]
    if asset:
        for market in snapshot.markets_by_base_asset.get(asset, ()):
            lines.append(
                f"Market {market.name}: address={market.address}, "
                f"vaultAddress={market.vault_address}, "
                f"settlementToken={market.settlement_token}"
            )
    return lines


async def main(argv: list[str] | None = None) -> None:
    """Main entry point for the config discovery runner."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config, config_url=args.url)
        client = await ConfigDiscovery.create(settings)
    except Exception as e:
        logger.error("Fatal error", error=str(e))
        sys.exit(1)

    for line in summarize(client.snapshot, args.asset):
        print(line)

    if args.once:
        await client.close()
        return

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop_event.set)

    async with client:
        updates = client.updates()

        async def print_updates() -> None:
            async for snapshot in updates:
                logger.info("Config update received", composed_at=snapshot.composed_at)
                for line in summarize(snapshot, args.asset):
                    print(line)

        printer = asyncio.create_task(print_updates())
        await stop_event.wait()
        logger.info("Received shutdown signal")
        updates.close()
        await printer


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
