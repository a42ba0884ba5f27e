"""Tests for the JSON-RPC log event source and block range splitting."""

import asyncio
from io import StringIO
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from eth_abi import encode
from eth_utils import encode_hex, to_checksum_address
from rich.console import Console

from stakedrop.data.stake_sets.base import split_block_interval
from stakedrop.data.stake_sets.rpc_logs import (
    STAKE_SET_TOPIC,
    RpcLogEventSource,
    decode_stake_set_log,
)
from stakedrop.helpers.rpc import RPCClient, RPCError


CONTRACT = "0x988b3a538b618c7a603e1c11ab82cd16dbe28069"
ALICE = "0x" + "aa" * 20
BOB = "0x" + "bb" * 20


def stake_set_log(address: str, block: int, log_index: int, total: int, **extra: Any) -> dict:
    """Raw StakeSet log as a node returns it."""
    return {
        "address": CONTRACT,
        "topics": [STAKE_SET_TOPIC, "0x" + "00" * 12 + address[2:]],
        "data": encode_hex(encode(["uint256", "uint128", "uint256"], [2, total, total])),
        "blockNumber": hex(block),
        "logIndex": hex(log_index),
        **extra,
    }


def mock_rpc_client(logs: list[dict]) -> MagicMock:
    """RPC client serving ``logs`` filtered by the requested block range."""

    async def get_logs(
        _client: object, _address: str, _topics: list, from_block: int, to_block: int
    ) -> list[dict]:
        await asyncio.sleep(0)
        return [log for log in logs if from_block <= int(log["blockNumber"], 16) <= to_block]

    rpc_client = MagicMock(spec=RPCClient)
    rpc_client.get_logs = AsyncMock(side_effect=get_logs)
    return rpc_client


class TestSplitBlockInterval:
    """Tests for split_block_interval function."""

    def test_splits_into_inclusive_chunks(self) -> None:
        """Test chunks are contiguous, inclusive and capped at batch_size."""
        assert split_block_interval(0, 9, 4) == [(0, 3), (4, 7), (8, 9)]

    def test_exact_multiple(self) -> None:
        """Test a range that divides evenly."""
        assert split_block_interval(10, 19, 5) == [(10, 14), (15, 19)]

    def test_single_block(self) -> None:
        """Test a one-block range."""
        assert split_block_interval(7, 7, 100) == [(7, 7)]

    def test_empty_range(self) -> None:
        """Test a reversed range yields no chunks."""
        assert split_block_interval(10, 9, 5) == []

    def test_rejects_non_positive_batch(self) -> None:
        """Test the batch size must be positive."""
        with pytest.raises(ValueError, match="batch_size must be positive"):
            split_block_interval(0, 10, 0)


class TestDecodeStakeSetLog:
    """Tests for decode_stake_set_log function."""

    def test_decodes_topics_and_data(self) -> None:
        """Test address, amounts and position are decoded."""
        decoded = decode_stake_set_log(stake_set_log(ALICE, 0x10, 3, 10**21))

        assert decoded.address == to_checksum_address(ALICE)
        assert decoded.subcourt_id == 2
        assert decoded.new_total_stake == 10**21
        assert (decoded.block_number, decoded.log_index) == (16, 3)

    def test_rejects_other_events(self) -> None:
        """Test logs of another event are refused."""
        log = stake_set_log(ALICE, 1, 0, 1)
        log["topics"][0] = "0x" + "12" * 32

        with pytest.raises(ValueError, match="Not a StakeSet log"):
            decode_stake_set_log(log)


class TestRpcLogEventSource:
    """Tests for RpcLogEventSource class."""

    def test_checksums_contract_address(self) -> None:
        """Test the contract address is normalised."""
        source = RpcLogEventSource(MagicMock(), AsyncMock(), CONTRACT)

        assert source.contract_address == to_checksum_address(CONTRACT)

    def test_rejects_bad_limits(self) -> None:
        """Test batch size and concurrency must be positive."""
        with pytest.raises(ValueError, match="must be positive"):
            RpcLogEventSource(MagicMock(), AsyncMock(), CONTRACT, concurrency=0)

    @pytest.mark.asyncio
    async def test_fetches_all_chunks_in_order(self) -> None:
        """Test every chunk is requested and events come back sorted."""
        rpc_client = mock_rpc_client([
            stake_set_log(BOB, 25, 1, 300),
            stake_set_log(ALICE, 3, 0, 100),
            stake_set_log(ALICE, 25, 0, 200),
        ])
        source = RpcLogEventSource(
            rpc_client, AsyncMock(spec=httpx.AsyncClient), CONTRACT, batch_size=10
        )

        events = await source.get_events(0, 29)

        assert rpc_client.get_logs.await_count == 3
        requested = sorted(call.args[3:5] for call in rpc_client.get_logs.await_args_list)
        assert requested == [(0, 9), (10, 19), (20, 29)]
        assert [(e.position, e.tiebreak, e.value) for e in events] == [
            (3, 0, 100),
            (25, 0, 200),
            (25, 1, 300),
        ]
        assert rpc_client.get_logs.await_args_list[0].args[2] == [STAKE_SET_TOPIC]

    @pytest.mark.asyncio
    async def test_skips_removed_logs(self) -> None:
        """Test logs dropped by a reorg are ignored."""
        rpc_client = mock_rpc_client([
            stake_set_log(ALICE, 3, 0, 100),
            stake_set_log(BOB, 4, 0, 5, removed=True),
        ])
        source = RpcLogEventSource(rpc_client, AsyncMock(spec=httpx.AsyncClient), CONTRACT)

        events = await source.get_events(0, 10)

        assert [e.address for e in events] == [to_checksum_address(ALICE)]

    @pytest.mark.asyncio
    async def test_respects_concurrency(self) -> None:
        """Test at most ``concurrency`` chunk requests run at once."""
        in_flight = 0
        peak = 0

        async def slow_logs(*_args: object) -> list[dict]:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return []

        rpc_client = MagicMock(spec=RPCClient)
        rpc_client.get_logs = AsyncMock(side_effect=slow_logs)
        source = RpcLogEventSource(
            rpc_client, AsyncMock(spec=httpx.AsyncClient), CONTRACT, batch_size=1, concurrency=3
        )

        assert await source.get_events(0, 11) == []
        assert rpc_client.get_logs.await_count == 12
        assert peak <= 3

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("no_retry_delay")
    async def test_chunk_failure_fails_everything(self) -> None:
        """Test a chunk that keeps failing aborts the whole fetch."""
        rpc_client = MagicMock(spec=RPCClient)
        rpc_client.get_logs = AsyncMock(side_effect=RPCError("RPC error: query timeout"))
        source = RpcLogEventSource(rpc_client, AsyncMock(spec=httpx.AsyncClient), CONTRACT)

        with pytest.raises(RPCError, match="query timeout"):
            await source.get_events(0, 10)

    @pytest.mark.asyncio
    async def test_progress_bar(self) -> None:
        """Test a console enables the progress display without changing results."""
        rpc_client = mock_rpc_client([stake_set_log(ALICE, 3, 0, 100)])
        console = Console(file=StringIO(), force_terminal=False)
        source = RpcLogEventSource(
            rpc_client,
            AsyncMock(spec=httpx.AsyncClient),
            CONTRACT,
            batch_size=5,
            console=console,
        )

        events = await source.get_events(0, 9)

        assert [e.value for e in events] == [100]
