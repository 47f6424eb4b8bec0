"""
Transaction History - CLI.

============================================================
USAGE
============================================================
python -m evm_tx_history 1 0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045
python -m evm_tx_history 8453 0x... --page-size 20 --categories external,erc20
python -m evm_tx_history 1 0x... --page-key <nextPageKey>

Credentials are read from ALCHEMY_KEY_* environment variables (.env is
loaded). The page is printed to stdout as JSON.

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from evm_tx_history.config import EnvCredentialSource, TxHistorySettings
from evm_tx_history.chains import ChainRegistry
from evm_tx_history.exceptions import TxHistoryError
from evm_tx_history.models import TxHistoryPage
from evm_tx_history.pipeline import AggregationPipeline


EXIT_OK = 0
EXIT_REQUEST_ERROR = 2

LOG_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)s | %(message)s"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="evm-tx-history",
        description="Fetch normalized EVM transaction history for an address",
    )
    parser.add_argument("chain_id", type=str, help="EVM chain id (e.g. 1, 8453)")
    parser.add_argument("address", type=str, help="0x-prefixed address")
    parser.add_argument("--page-key", type=str, default=None, help="nextPageKey from a previous page")
    parser.add_argument("--page-size", type=int, default=None, help="Items per page")
    parser.add_argument("--from-block", type=str, default=None, help="Hex block to scan from")
    parser.add_argument(
        "--categories",
        type=str,
        default=None,
        help="Comma-separated subset of external,erc20,erc721,erc1155",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: WARNING)",
    )
    return parser


def parse_categories(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [c.strip() for c in value.split(",") if c.strip()]


async def run(
    args: argparse.Namespace,
    pipeline: Optional[AggregationPipeline] = None,
) -> TxHistoryPage:
    """Run one fetch with a fresh pipeline unless one is given."""
    chain_id = int(args.chain_id)
    owns_pipeline = pipeline is None
    if pipeline is None:
        pipeline = AggregationPipeline(
            settings=TxHistorySettings.from_env(),
            registry=ChainRegistry(EnvCredentialSource()),
        )
    try:
        return await pipeline.fetch_history(
            chain_id,
            args.address,
            page_key=args.page_key,
            page_size=args.page_size,
            from_block=args.from_block,
            categories=parse_categories(args.categories),
        )
    finally:
        if owns_pipeline:
            await pipeline.close()


def main(
    argv: Optional[List[str]] = None,
    pipeline: Optional[AggregationPipeline] = None,
) -> int:
    """CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        int(args.chain_id)
    except ValueError:
        print("Error: Invalid chainId", file=sys.stderr)
        return EXIT_REQUEST_ERROR

    try:
        page = asyncio.run(run(args, pipeline))
    except TxHistoryError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_REQUEST_ERROR

    print(json.dumps(page.to_dict(), indent=2))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
