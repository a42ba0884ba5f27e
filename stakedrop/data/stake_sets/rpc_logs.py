"""Stake change events read straight from contract logs over JSON-RPC."""

import asyncio
from typing import Any

import httpx
from eth_abi import decode
from eth_utils import decode_hex, encode_hex, keccak, to_checksum_address
from rich.console import Console

from stakedrop.data.stake_sets.base import EventSource, split_block_interval
from stakedrop.data.stake_sets.models import StakeSetLog
from stakedrop.helpers.constants import DEFAULT_BLOCK_BATCH_SIZE, DEFAULT_CONCURRENCY
from stakedrop.helpers.http import retry_with_backoff
from stakedrop.helpers.logging import get_logger
from stakedrop.helpers.parsers import parse_hex_int
from stakedrop.helpers.progress import track_progress
from stakedrop.helpers.rpc import RPCClient, RPCError
from stakedrop.snapshot.events import event_sort_key
from stakedrop.snapshot.models import ChangeEvent


logger = get_logger(__name__)

STAKE_SET_SIGNATURE = "StakeSet(address,uint256,uint128,uint256)"
STAKE_SET_TOPIC = encode_hex(keccak(text=STAKE_SET_SIGNATURE))
"""topic0 of ``StakeSet``; the juror address is the indexed topic1."""

STAKE_SET_DATA_TYPES = ["uint256", "uint128", "uint256"]


def decode_stake_set_log(log: dict[str, Any]) -> StakeSetLog:
    """Decode one raw ``StakeSet`` log object.

    Raises:
        ValueError: If the log is not a StakeSet log or is truncated
    """
    topics = log.get("topics") or []
    if len(topics) < 2 or topics[0].lower() != STAKE_SET_TOPIC:
        msg = f"Not a StakeSet log: {topics}"
        raise ValueError(msg)

    subcourt_id, stake, new_total_stake = decode(
        STAKE_SET_DATA_TYPES, decode_hex(log["data"])
    )
    return StakeSetLog(
        address=to_checksum_address(decode_hex(topics[1])[-20:]),
        subcourt_id=subcourt_id,
        stake=stake,
        new_total_stake=new_total_stake,
        block_number=parse_hex_int(log["blockNumber"]),
        log_index=parse_hex_int(log["logIndex"]),
    )


class RpcLogEventSource(EventSource):
    """Fetches ``StakeSet`` logs in fixed-size block chunks.

    Chunks are requested concurrently, with at most ``concurrency`` requests
    in flight. Any chunk that still fails after retries fails the whole call.
    """

    def __init__(
        self,
        rpc_client: RPCClient,
        http_client: httpx.AsyncClient,
        contract_address: str,
        *,
        batch_size: int = DEFAULT_BLOCK_BATCH_SIZE,
        concurrency: int = DEFAULT_CONCURRENCY,
        console: Console | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            rpc_client: JSON-RPC client for the chain
            http_client: HTTP client used for every request
            contract_address: Staking contract emitting the logs
            batch_size: Blocks per eth_getLogs request
            concurrency: Maximum number of simultaneous requests
            console: Rich console for a progress bar (None disables it)

        Raises:
            ValueError: If the address is invalid or a limit is not positive
        """
        if batch_size <= 0 or concurrency <= 0:
            msg = f"batch_size and concurrency must be positive, got {batch_size} and {concurrency}"
            raise ValueError(msg)

        self.rpc_client = rpc_client
        self.http_client = http_client
        self.contract_address = to_checksum_address(contract_address)
        self.batch_size = batch_size
        self.semaphore = asyncio.Semaphore(concurrency)
        self.console = console

    @retry_with_backoff(retry_on=(httpx.HTTPError, RPCError))
    async def _fetch_chunk(self, from_block: int, to_block: int) -> list[dict[str, Any]]:
        async with self.semaphore:
            return await self.rpc_client.get_logs(
                self.http_client,
                self.contract_address,
                [STAKE_SET_TOPIC],
                from_block,
                to_block,
            )

    async def get_events(self, from_block: int, to_block: int) -> list[ChangeEvent]:
        """Stake change events in ``[from_block, to_block]``, oldest first."""
        chunks = split_block_interval(from_block, to_block, self.batch_size)
        if not chunks:
            return []

        logger.info(
            "Fetching StakeSet logs for blocks %d..%d in %d chunks",
            from_block,
            to_block,
            len(chunks),
        )

        if self.console is None:
            results = await asyncio.gather(*(self._fetch_chunk(*c) for c in chunks))
        else:
            with track_progress("Fetching logs", len(chunks), self.console) as (progress, task):

                async def fetch(chunk: tuple[int, int]) -> list[dict[str, Any]]:
                    logs = await self._fetch_chunk(*chunk)
                    progress.update(task, advance=1)
                    return logs

                results = await asyncio.gather(*(fetch(c) for c in chunks))

        events = [
            decode_stake_set_log(log).to_change_event()
            for logs in results
            for log in logs
            if not log.get("removed", False)
        ]
        events.sort(key=event_sort_key)
        logger.info("Fetched %d StakeSet logs", len(events))
        return events


__all__ = [
    "STAKE_SET_SIGNATURE",
    "STAKE_SET_TOPIC",
    "RpcLogEventSource",
    "decode_stake_set_log",
]
