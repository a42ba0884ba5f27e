"""Ethereum JSON-RPC client utilities."""

import operator
from typing import Any

import httpx

from stakedrop.helpers.parsers import parse_hex_int


class RPCError(ValueError):
    """Raised when a JSON-RPC response carries an error object."""


class RPCClient:
    """Ethereum JSON-RPC client with batching support."""

    def __init__(self, rpc_url: str, timeout: float = 30.0) -> None:
        """Initialize RPC client.

        Args:
            rpc_url: Ethereum JSON-RPC endpoint URL
            timeout: Default timeout for requests in seconds

        Raises:
            ValueError: If rpc_url is empty or None
        """
        if not rpc_url:
            msg = "RPC URL cannot be empty"
            raise ValueError(msg)

        self.rpc_url = rpc_url
        self.timeout = timeout

    async def call(
        self,
        client: httpx.AsyncClient,
        method: str,
        params: list[Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Make a single JSON-RPC call.

        Args:
            client: HTTP client instance
            method: RPC method name (e.g., "eth_blockNumber")
            params: Method parameters list
            timeout: Optional timeout override

        Returns:
            RPC result value

        Raises:
            httpx.HTTPError: If the HTTP request fails
            RPCError: If the RPC response contains an error
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": 1,
        }

        response = await client.post(
            self.rpc_url, json=payload, timeout=timeout or self.timeout
        )
        response.raise_for_status()
        result = response.json()

        if "error" in result:
            msg = f"RPC error: {result['error']}"
            raise RPCError(msg)

        return result.get("result")

    async def batch_call(
        self,
        client: httpx.AsyncClient,
        requests: list[tuple[str, list[Any]]],
        *,
        timeout: float | None = None,
    ) -> list[Any]:
        """Make multiple JSON-RPC calls in a single batch request.

        One failing entry fails the whole batch.

        Args:
            client: HTTP client instance
            requests: List of (method, params) tuples
            timeout: Optional timeout override

        Returns:
            List of results in the same order as requests

        Raises:
            httpx.HTTPError: If the HTTP request fails
            RPCError: If any entry of the batch contains an error
        """
        batch_payload: list[dict[str, Any]] = []
        for idx, (method, params) in enumerate(requests):
            batch_payload.append({
                "jsonrpc": "2.0",
                "method": method,
                "params": params,
                "id": idx,
            })

        response = await client.post(
            self.rpc_url, json=batch_payload, timeout=timeout or self.timeout
        )
        response.raise_for_status()
        results = response.json()

        # Sort by ID to match request order
        sorted_results = sorted(results, key=operator.itemgetter("id"))

        for entry in sorted_results:
            if "error" in entry:
                msg = f"RPC error in batch entry {entry['id']}: {entry['error']}"
                raise RPCError(msg)

        return [r.get("result") for r in sorted_results]

    async def get_block_number(self, client: httpx.AsyncClient) -> int:
        """Get the latest block number.

        Args:
            client: HTTP client instance

        Returns:
            Latest block number
        """
        result = await self.call(client, "eth_blockNumber", [])
        return parse_hex_int(result) if result else 0

    async def get_chain_id(self, client: httpx.AsyncClient) -> int:
        """Get the chain id of the connected network.

        Args:
            client: HTTP client instance

        Returns:
            Chain id as an integer
        """
        result = await self.call(client, "eth_chainId", [])
        return parse_hex_int(result)

    async def get_block_timestamp(
        self, client: httpx.AsyncClient, block_number: int
    ) -> int:
        """Get the Unix timestamp of a block.

        Args:
            client: HTTP client instance
            block_number: Block height

        Returns:
            Block timestamp in Unix seconds

        Raises:
            LookupError: If the node does not know the block
        """
        # False = don't include full transactions
        block = await self.call(
            client, "eth_getBlockByNumber", [hex(block_number), False]
        )
        if not block:
            msg = f"Block {block_number} not found"
            raise LookupError(msg)
        return parse_hex_int(block["timestamp"])

    async def get_logs(
        self,
        client: httpx.AsyncClient,
        address: str,
        topics: list[str | None],
        from_block: int,
        to_block: int,
        *,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch event logs emitted by a contract within a block range.

        Args:
            client: HTTP client instance
            address: Contract address
            topics: Topic filter (topic0 is the event signature hash)
            from_block: First block (inclusive)
            to_block: Last block (inclusive)
            timeout: Optional timeout override

        Returns:
            Raw log objects as returned by the node
        """
        log_filter = {
            "address": address,
            "topics": topics,
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block),
        }
        result = await self.call(
            client, "eth_getLogs", [log_filter], timeout=timeout
        )
        return result or []


__all__ = [
    "RPCClient",
    "RPCError",
]
