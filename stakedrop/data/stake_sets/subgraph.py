"""Stake change events from the court display subgraph."""

from typing import Any

import httpx

from stakedrop.data.stake_sets.base import EventSource
from stakedrop.data.stake_sets.models import SubgraphStakeSet
from stakedrop.helpers.constants import SUBGRAPH_MAX_PAGES, SUBGRAPH_PAGE_SIZE
from stakedrop.helpers.http import retry_with_backoff
from stakedrop.helpers.logging import get_logger
from stakedrop.snapshot.events import event_sort_key
from stakedrop.snapshot.models import ChangeEvent


logger = get_logger(__name__)

SUBGRAPH_ENDPOINTS = {
    1: "https://api.thegraph.com/subgraphs/name/greenlucid/kleros-display-mainnet",
    100: "https://api.thegraph.com/subgraphs/name/greenlucid/kleros-display",
}
"""Known subgraph deployments by chain id."""

STAKE_SETS_QUERY = """
query StakeSets($fromBlock: BigInt!, $toBlock: BigInt!, $lastId: String!, $first: Int!) {
  stakeSets(
    where: { blocknumber_gte: $fromBlock, blocknumber_lte: $toBlock, id_gt: $lastId }
    orderBy: id
    orderDirection: asc
    first: $first
  ) {
    id
    address
    subcourtID
    stake
    newTotalStake
    logIndex
    blocknumber
  }
}
"""


class SubgraphError(Exception):
    """The subgraph answered with GraphQL errors or an unexpected payload."""


def get_subgraph_endpoint(chain_id: int) -> str:
    """Default subgraph URL for a chain.

    Raises:
        ValueError: If no deployment is known for the chain
    """
    try:
        return SUBGRAPH_ENDPOINTS[chain_id]
    except KeyError:
        known = ", ".join(str(c) for c in sorted(SUBGRAPH_ENDPOINTS))
        msg = f"No subgraph known for chain {chain_id} (known: {known}); pass an explicit URL"
        raise ValueError(msg) from None


class SubgraphEventSource(EventSource):
    """Pages through every ``stakeSets`` entity of a block range."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        endpoint: str,
        page_size: int = SUBGRAPH_PAGE_SIZE,
        max_pages: int = SUBGRAPH_MAX_PAGES,
    ) -> None:
        """Initialize the source.

        Args:
            http_client: HTTP client used for the GraphQL requests
            endpoint: Subgraph URL
            page_size: Entities requested per page
            max_pages: Upper bound on the number of pages fetched

        Raises:
            ValueError: If the endpoint is empty or a limit is not positive
        """
        if not endpoint:
            msg = "Subgraph endpoint cannot be empty"
            raise ValueError(msg)
        if page_size <= 0 or max_pages <= 0:
            msg = f"page_size and max_pages must be positive, got {page_size} and {max_pages}"
            raise ValueError(msg)

        self.http_client = http_client
        self.endpoint = endpoint
        self.page_size = page_size
        self.max_pages = max_pages

    @classmethod
    def for_chain(
        cls, http_client: httpx.AsyncClient, chain_id: int, endpoint: str | None = None
    ) -> "SubgraphEventSource":
        """Source for a chain, using ``endpoint`` when given."""
        return cls(http_client, endpoint or get_subgraph_endpoint(chain_id))

    @retry_with_backoff()
    async def _fetch_page(
        self, from_block: int, to_block: int, last_id: str
    ) -> list[dict[str, Any]]:
        payload = {
            "query": STAKE_SETS_QUERY,
            "variables": {
                "fromBlock": str(from_block),
                "toBlock": str(to_block),
                "lastId": last_id,
                "first": self.page_size,
            },
        }
        response = await self.http_client.post(self.endpoint, json=payload)
        response.raise_for_status()
        body = response.json()

        if body.get("errors"):
            msg = f"Subgraph error: {body['errors']}"
            raise SubgraphError(msg)

        data = body.get("data") or {}
        if "stakeSets" not in data:
            msg = f"Subgraph response has no stakeSets: {body}"
            raise SubgraphError(msg)
        return data["stakeSets"]

    async def fetch_stake_sets(self, from_block: int, to_block: int) -> list[SubgraphStakeSet]:
        """Every stake set entity in ``[from_block, to_block]``, in id order.

        Raises:
            SubgraphError: On GraphQL errors or when the page limit is reached
                before the last page
            httpx.HTTPError: If the subgraph stays unreachable after retries
        """
        stake_sets: list[SubgraphStakeSet] = []
        last_id = ""
        for page in range(self.max_pages):
            rows = await self._fetch_page(from_block, to_block, last_id)
            logger.debug("Stake sets page %d: %d rows", page, len(rows))
            stake_sets.extend(SubgraphStakeSet.model_validate(row) for row in rows)
            if len(rows) < self.page_size:
                return stake_sets
            last_id = rows[-1]["id"]

        msg = f"Stopped after {self.max_pages} pages of stake sets; the result would be incomplete"
        raise SubgraphError(msg)

    async def get_events(self, from_block: int, to_block: int) -> list[ChangeEvent]:
        """Stake change events in ``[from_block, to_block]``, oldest first."""
        if to_block < from_block:
            return []

        stake_sets = await self.fetch_stake_sets(from_block, to_block)
        events = sorted(
            (stake_set.to_change_event() for stake_set in stake_sets),
            key=event_sort_key,
        )
        logger.info(
            "Fetched %d stake sets for blocks %d..%d from %s",
            len(events),
            from_block,
            to_block,
            self.endpoint,
        )
        return events


__all__ = [
    "SUBGRAPH_ENDPOINTS",
    "SubgraphError",
    "SubgraphEventSource",
    "get_subgraph_endpoint",
]
