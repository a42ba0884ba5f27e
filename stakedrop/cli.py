"""Command line entry point: create and verify distribution snapshots."""

import asyncio
import sys
from argparse import ArgumentParser, Namespace
from pathlib import Path

import httpx
from rich.console import Console
from rich.table import Table

from stakedrop.data.blocks.cache import BlockTimestampCache
from stakedrop.data.blocks.oracle import RpcBlockTimestampOracle
from stakedrop.data.blocks.resolver import PositionResolver
from stakedrop.data.stake_sets.base import EventSource
from stakedrop.data.stake_sets.rpc_logs import RpcLogEventSource
from stakedrop.data.stake_sets.subgraph import SubgraphEventSource
from stakedrop.helpers.config import (
    get_average_blocks_per_second,
    get_eth_rpc_url,
    get_required_env,
    get_subgraph_url,
)
from stakedrop.helpers.constants import (
    DEFAULT_CACHE_DIR,
    DEFAULT_CONCURRENCY,
    DEFAULT_FREQUENCY,
    EXTENDED_TIMEOUT,
)
from stakedrop.helpers.http import create_http_client
from stakedrop.helpers.logging import LOG_LEVELS, get_logger, set_log_level
from stakedrop.helpers.parsers import format_token_amount, parse_date, parse_token_amount
from stakedrop.helpers.rpc import RPCClient
from stakedrop.snapshot.creator import SnapshotCreator
from stakedrop.snapshot.manifest import Snapshot
from stakedrop.snapshot.store import load_snapshot, store_on_local_cache


logger = get_logger(__name__)


def build_parser() -> ArgumentParser:
    """Argument parser with the ``create`` and ``verify`` sub-commands."""
    parser = ArgumentParser(
        prog="stakedrop",
        description="Time-weighted stake snapshots and Merkle airdrop manifests",
        epilog="Defaults can also be set in a .env file (ETH_RPC_URL, STAKEDROP_*).",
    )
    parser.add_argument("--log-level", choices=list(LOG_LEVELS), default="INFO")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create and store a snapshot")
    create.add_argument(
        "--amount",
        type=parse_token_amount,
        required=True,
        help="Tokens being distributed, in whole tokens (e.g. 1000000 or 0.5)",
    )
    create.add_argument("--period", required=True, help="Numeric period id of the distribution")
    create.add_argument("--chain-id", type=int, help="Chain id (asked from the node if omitted)")
    create.add_argument("--start-date", type=parse_date, help="Start of the averaging period (ISO 8601)")
    create.add_argument("--end-date", type=parse_date, help="End of the averaging period (ISO 8601)")
    create.add_argument("--from-block", type=int, default=0, help="First block to read events from")
    create.add_argument("--to-block", type=int, help="Last block to read events from (default: latest)")
    create.add_argument("--source", choices=["subgraph", "rpc"], default="subgraph")
    create.add_argument("--contract-address", help="Staking contract (rpc source only)")
    create.add_argument("--subgraph-url", help="Subgraph endpoint (default: known endpoint for the chain)")
    create.add_argument("--rpc-url", help="JSON-RPC endpoint (default: ETH_RPC_URL)")
    create.add_argument("--frequency", default=DEFAULT_FREQUENCY, help="Distribution frequency used for the APY")
    create.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY)
    create.add_argument("--output-dir", type=Path, default=Path(DEFAULT_CACHE_DIR))
    create.add_argument("--no-cache", action="store_true", help="Do not persist block timestamps")

    verify = subparsers.add_parser("verify", help="Check the proof of one claim")
    verify.add_argument("--snapshot", type=Path, required=True, help="Snapshot JSON file")
    verify.add_argument("--address", required=True, help="Claimant address")

    return parser


def make_event_source(
    args: Namespace,
    chain_id: int,
    rpc_client: RPCClient,
    http_client: httpx.AsyncClient,
    console: Console,
) -> EventSource:
    """Event source selected by ``--source``."""
    if args.source == "rpc":
        contract_address = args.contract_address or get_required_env("STAKEDROP_CONTRACT_ADDRESS")
        return RpcLogEventSource(
            rpc_client,
            http_client,
            contract_address,
            concurrency=args.concurrency,
            console=console,
        )
    return SubgraphEventSource.for_chain(http_client, chain_id, get_subgraph_url(args.subgraph_url))


def print_summary(console: Console, snapshot: Snapshot, path: Path) -> None:
    """Short table describing a stored snapshot."""
    table = Table(title="Snapshot")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    if snapshot.start_date and snapshot.end_date:
        table.add_row("Period", f"{snapshot.start_date.isoformat()} .. {snapshot.end_date.isoformat()}")
        table.add_row("Blocks", f"[{snapshot.start_block}, {snapshot.end_block})")
    table.add_row("Block height", str(snapshot.block_height))
    table.add_row("Claims", f"{len(snapshot.merkle_tree.claims):,}")
    table.add_row("Root", snapshot.merkle_tree.root)
    table.add_row("Average total staked", format_token_amount(snapshot.average_total_staked))
    table.add_row("Dropped", format_token_amount(snapshot.dropped_amount))
    table.add_row("Claimable", format_token_amount(snapshot.total_claimable))
    table.add_row("APY", f"{snapshot.apy:.2%}")
    table.add_row("File", str(path))
    console.print(table)


async def run_create(args: Namespace, console: Console) -> Path:
    """Create a snapshot as described by ``args`` and store it."""
    if (args.start_date is None) != (args.end_date is None):
        msg = "--start-date and --end-date must be given together"
        raise ValueError(msg)

    rpc_client = RPCClient(get_eth_rpc_url(args.rpc_url), timeout=EXTENDED_TIMEOUT)
    cache = None

    async with create_http_client(timeout=EXTENDED_TIMEOUT) as http_client:
        chain_id = args.chain_id or await rpc_client.get_chain_id(http_client)
        if not args.no_cache:
            cache = BlockTimestampCache(chain_id)

        try:
            oracle = RpcBlockTimestampOracle(
                rpc_client, http_client, cache, max_concurrency=args.concurrency
            )
            creator = SnapshotCreator(
                event_source=make_event_source(args, chain_id, rpc_client, http_client, console),
                resolver=PositionResolver(oracle, get_average_blocks_per_second()),
                dropped_amount=args.amount,
                frequency=args.frequency,
            )

            if args.start_date is None:
                snapshot = await creator.create_at_height(args.from_block, args.to_block)
            else:
                snapshot = await creator.create(
                    args.start_date,
                    args.end_date,
                    from_block=args.from_block,
                    to_block=args.to_block,
                )
        finally:
            if cache is not None:
                await cache.engine.dispose()

    path = store_on_local_cache(chain_id, args.period, snapshot, args.output_dir)
    print_summary(console, snapshot, path)
    return path


def run_verify(args: Namespace, console: Console) -> bool:
    """Check one address's claim in a stored snapshot."""
    snapshot = load_snapshot(args.snapshot)
    claim = snapshot.merkle_tree.get_claim(args.address)
    if claim is None:
        console.print(f"[yellow]{args.address} has no claim in {args.snapshot}[/yellow]")
        return False

    valid = snapshot.verify_claim(args.address)
    status = "[green]valid[/green]" if valid else "[red]INVALID[/red]"
    console.print(f"{claim.address}: {format_token_amount(claim.value)} tokens, proof {status}")
    return valid


def main(argv: list[str] | None = None) -> int:
    """Run the command line; returns the process exit status."""
    args = build_parser().parse_args(argv)
    set_log_level(args.log_level)
    console = Console()

    try:
        if args.command == "create":
            asyncio.run(run_create(args, console))
            return 0
        return 0 if run_verify(args, console) else 1
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting...")
        return 1
    except Exception as e:
        logger.exception("Fatal error")
        console.print(f"[red]Error:[/red] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
