"""
Ledger Query Client: GraphQL reads against the Arweave index.

Every FairAI record (registrations, cancellations, liveness proofs, wallet
links, requests, responses, stamps) is a tagged Arweave transaction. This
client runs tag/owner/id filtered queries, newest first, and fetches raw
transaction bodies from the gateway.

Configuration:
    Config(graphql_url="https://arweave.net/graphql",
           gateway_url="https://arweave.net")
    or FAIRAI_GRAPHQL_URL / FAIRAI_GATEWAY_URL env vars.
"""

from __future__ import annotations

from typing import Any, Iterable

import httpx

from fairai.core.config import Config
from fairai.core.exceptions import NetworkError
from fairai.core.logging import get_logger
from fairai.core.types import TagFilter, TransactionNode, TransactionPage
from fairai.resilience.retry import execute_with_retry

logger = get_logger("ledger.query")

TRANSACTIONS_QUERY = """
query transactions($tags: [TagFilter!], $owners: [String!], $ids: [ID!], $first: Int!, $after: String) {
  transactions(
    tags: $tags
    owners: $owners
    ids: $ids
    first: $first
    after: $after
    sort: HEIGHT_DESC
  ) {
    pageInfo {
      hasNextPage
    }
    edges {
      cursor
      node {
        id
        tags {
          name
          value
        }
        owner {
          address
          key
        }
      }
    }
  }
}
"""

# Safety cap for cursor-following mode
MAX_PAGES = 50


class LedgerQueryClient:
    """
    Async GraphQL client for the Arweave transaction index.

    By default a query returns a single page (``Config.page_size`` results).
    Set ``Config.follow_pagination`` to walk every page via the returned
    cursors.

    Usage:
        ledger = LedgerQueryClient(Config())
        page = await ledger.query(
            tags=[TagFilter.of("Protocol-Name", "FairAI")],
            first=10,
        )
        for node in page.nodes:
            print(node.id, node.get_tag("Operation-Name"))
    """

    def __init__(
        self,
        config: Config,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._http_client = http_client
        self._owns_client = False

    @property
    def config(self) -> Config:
        return self._config

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._config.request_timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close owned HTTP client."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    # ─── GraphQL ─────────────────────────────────────────────────────

    async def _post_graphql(self, variables: dict[str, Any]) -> dict[str, Any]:
        client = await self._get_client()
        url = self._config.graphql_url
        try:
            response = await client.post(
                url, json={"query": TRANSACTIONS_QUERY, "variables": variables}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"Ledger query failed with HTTP {e.response.status_code}",
                status_code=e.response.status_code,
                url=url,
            ) from e

        body = response.json()
        if body.get("errors"):
            raise NetworkError(
                "Ledger query returned errors",
                url=url,
                details={"errors": body["errors"]},
            )
        return body.get("data") or {}

    async def query(
        self,
        tags: Iterable[TagFilter] | None = None,
        owners: Iterable[str] | None = None,
        ids: Iterable[str] | None = None,
        first: int | None = None,
        after: str | None = None,
    ) -> TransactionPage:
        """
        Run one page of a filtered transaction query.

        Args:
            tags: Tag filters; every filter must match
            owners: Restrict to transactions owned by these addresses
            ids: Restrict to these transaction ids
            first: Page size (defaults to Config.page_size)
            after: Cursor from a previous page

        Returns:
            TransactionPage with edges sorted newest first
        """
        variables: dict[str, Any] = {
            "tags": [t.to_dict() for t in tags] if tags is not None else None,
            "owners": list(owners) if owners is not None else None,
            "ids": list(ids) if ids is not None else None,
            "first": first if first is not None else self._config.page_size,
            "after": after,
        }
        data = await execute_with_retry(self._post_graphql, variables)
        page = TransactionPage.from_api_response(data)
        logger.debug(
            f"Ledger query returned {len(page)} edges (has_next_page={page.has_next_page})"
        )
        return page

    async def query_all(
        self,
        tags: Iterable[TagFilter] | None = None,
        owners: Iterable[str] | None = None,
        ids: Iterable[str] | None = None,
        first: int | None = None,
        max_pages: int = MAX_PAGES,
    ) -> list[TransactionNode]:
        """Follow cursors until the index reports no further pages."""
        tags = list(tags) if tags is not None else None
        owners = list(owners) if owners is not None else None
        ids = list(ids) if ids is not None else None

        nodes: list[TransactionNode] = []
        after: str | None = None
        for _ in range(max_pages):
            page = await self.query(tags=tags, owners=owners, ids=ids, first=first, after=after)
            nodes.extend(page.nodes)
            if not page.has_next_page or page.end_cursor is None:
                return nodes
            after = page.end_cursor

        logger.warning(f"Stopped paginating after {max_pages} pages")
        return nodes

    async def find(
        self,
        tags: Iterable[TagFilter] | None = None,
        owners: Iterable[str] | None = None,
        ids: Iterable[str] | None = None,
        first: int | None = None,
    ) -> list[TransactionNode]:
        """
        Return matching nodes, honouring ``Config.follow_pagination``.

        In single-page mode anything past the first page is silently
        ignored.
        """
        if self._config.follow_pagination:
            return await self.query_all(tags=tags, owners=owners, ids=ids, first=first)
        page = await self.query(tags=tags, owners=owners, ids=ids, first=first)
        return page.nodes

    async def find_by_id(self, tx_id: str) -> TransactionNode | None:
        """Look up a single transaction by id."""
        page = await self.query(ids=[tx_id], first=1)
        return page.nodes[0] if page.nodes else None

    # ─── Gateway ─────────────────────────────────────────────────────

    async def _get_data(self, tx_id: str) -> str:
        client = await self._get_client()
        url = f"{self._config.gateway_url.rstrip('/')}/{tx_id}"
        try:
            response = await client.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"Gateway returned HTTP {e.response.status_code} for {tx_id}",
                status_code=e.response.status_code,
                url=url,
            ) from e
        return response.text

    async def fetch_data(self, tx_id: str) -> str:
        """Fetch the body of a transaction as text."""
        return await execute_with_retry(self._get_data, tx_id)
