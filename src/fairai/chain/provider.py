"""
Chain Log Client: lightweight JSON-RPC reads for USDC on Arbitrum.

Uses httpx to call ``eth_getLogs``, ``eth_getTransactionByHash``,
``eth_getBalance`` and ``eth_call`` directly. No web3 dependency.

Log scans are bounded by block height. A unix timestamp is mapped to the
nearest block through the DefiLlama block API, and the scan starts
``Config.block_lookback`` blocks before it.

Configuration (pick one):
    1. Constructor: ChainLogClient(Config(rpc_url="https://arb1.arbitrum.io/rpc"))
    2. Env var:     FAIRAI_RPC_URL=https://arb-mainnet.g.alchemy.com/v2/KEY

For fallback, pass comma-separated URLs:
    FAIRAI_RPC_URL=https://alchemy.com/v2/KEY,https://arb1.arbitrum.io/rpc
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any, AsyncIterator

import httpx

from fairai.chain import abi
from fairai.core.config import Config
from fairai.core.constants import NATIVE_DECIMALS, TRANSFER_EVENT_TOPIC
from fairai.core.exceptions import NetworkError
from fairai.core.logging import get_logger
from fairai.core.types import AmountType, TransferLog, to_decimal
from fairai.resilience.retry import execute_with_retry

logger = get_logger("chain.provider")


class ChainLogClient:
    """
    JSON-RPC client for USDC transfer logs and memo decoding.

    Supports multi-provider fallback: if the primary RPC fails, the next URL
    in the list is tried. When every provider fails a NetworkError is
    raised.

    Usage:
        chain = ChainLogClient(Config())
        logs = await chain.get_transfer_logs_to("0xOperator", timestamp=1718000000)
        memo = await chain.decode_memo(logs[-1].transaction_hash)
    """

    def __init__(
        self,
        config: Config,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._rpc_urls = config.rpc_urls
        self._token = config.usdc_address
        self._http_client = http_client
        self._owns_client = False
        self._request_id = 0

    @property
    def token_address(self) -> str:
        return self._token

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

    # ─── JSON-RPC Call with Multi-Provider Fallback ──────────────────

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        """
        Execute a JSON-RPC request, trying each provider in order.

        Returns:
            The ``result`` field of the first successful response

        Raises:
            NetworkError: every provider failed
        """
        client = await self._get_client()
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._request_id,
        }

        last_error: Exception | None = None
        status_code: int | None = None
        for i, rpc_url in enumerate(self._rpc_urls):
            try:
                response = await client.post(rpc_url, json=payload)
                response.raise_for_status()
                result = response.json()

                if "error" in result:
                    logger.debug(f"{method} RPC error from {rpc_url}: {result['error']}")
                    last_error = NetworkError(
                        f"RPC error: {result['error']}", url=rpc_url, details=result["error"]
                    )
                    continue

                return result.get("result")

            except httpx.TimeoutException as e:
                logger.warning(
                    f"RPC timeout from provider {i+1}/{len(self._rpc_urls)}: {rpc_url}"
                )
                last_error = e
            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                logger.warning(
                    f"RPC HTTP {status_code} from provider {i+1}/{len(self._rpc_urls)}: {rpc_url}"
                )
                last_error = e
            except httpx.HTTPError as e:
                logger.warning(f"RPC error from provider {i+1}/{len(self._rpc_urls)}: {e}")
                last_error = e

        logger.error(f"All {len(self._rpc_urls)} RPC providers failed for {method}: {last_error}")
        raise NetworkError(
            f"All RPC providers failed for {method}",
            status_code=status_code,
            details={"error": str(last_error)},
        ) from last_error

    async def eth_call(self, to: str, data: str) -> str:
        """Read-only contract call; returns hex result without 0x."""
        raw = await self._rpc("eth_call", [{"to": to, "data": data}, "latest"])
        if not raw or raw == "0x":
            return ""
        return raw[2:]

    # ─── Token Reads ─────────────────────────────────────────────────

    async def get_decimals(self) -> int:
        """Read ``decimals()`` from the USDC contract."""
        result = await self.eth_call(self._token, abi.encode_call("decimals()"))
        return abi.decode_uint256(result)

    async def get_balance_of(self, address: str) -> Decimal:
        """USDC balance of `address` in whole tokens."""
        data = abi.encode_call("balanceOf(address)", abi.encode_address(address))
        raw = abi.decode_uint256(await self.eth_call(self._token, data))
        return abi.from_base_units(raw, await self.get_decimals())

    async def get_allowance(self, owner: str, spender: str) -> Decimal:
        """USDC allowance granted by `owner` to `spender` in whole tokens."""
        data = abi.encode_call(
            "allowance(address,address)",
            abi.encode_address(owner),
            abi.encode_address(spender),
        )
        raw = abi.decode_uint256(await self.eth_call(self._token, data))
        return abi.from_base_units(raw, await self.get_decimals())

    async def get_native_balance(self, address: str) -> Decimal:
        """ETH balance of `address`, which pays the gas for USDC transfers."""
        raw = await self._rpc("eth_getBalance", [address, "latest"])
        return abi.from_base_units(int(raw, 16), NATIVE_DECIMALS)

    # ─── Blocks ──────────────────────────────────────────────────────

    async def get_block_number(self) -> int:
        result = await self._rpc("eth_blockNumber", [])
        return int(result, 16)

    async def _get_nearest_block(self, timestamp: int) -> int:
        client = await self._get_client()
        url = f"{self._config.block_api_url.rstrip('/')}/{timestamp}"
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"Block lookup failed with HTTP {e.response.status_code}",
                status_code=e.response.status_code,
                url=url,
            ) from e
        body = response.json()
        if "height" not in body:
            raise NetworkError("Block lookup returned no height", url=url, details=body)
        return int(body["height"])

    async def nearest_block(self, timestamp: float) -> int:
        """Block height closest to a unix timestamp."""
        return await execute_with_retry(self._get_nearest_block, int(timestamp))

    async def _block_range(
        self,
        timestamp: float | None,
        block_limit: int | None,
    ) -> tuple[str, str]:
        if timestamp is None:
            return "earliest", "latest"
        anchor = await self.nearest_block(timestamp)
        from_block = max(anchor - self._config.block_lookback, 0)
        to_block = hex(anchor + block_limit) if block_limit else "latest"
        return hex(from_block), to_block

    # ─── Transfer Logs ───────────────────────────────────────────────

    async def _get_transfer_logs(
        self,
        sender: str | None,
        recipient: str | None,
        timestamp: float | None,
        block_limit: int | None,
    ) -> list[TransferLog]:
        from_block, to_block = await self._block_range(timestamp, block_limit)
        return await self._fetch_transfer_logs(sender, recipient, from_block, to_block)

    async def _fetch_transfer_logs(
        self,
        sender: str | None,
        recipient: str | None,
        from_block: str,
        to_block: str,
    ) -> list[TransferLog]:
        topics: list[str | None] = [
            TRANSFER_EVENT_TOPIC,
            abi.address_topic(sender) if sender else None,
            abi.address_topic(recipient) if recipient else None,
        ]
        raw_logs = await self._rpc(
            "eth_getLogs",
            [{
                "address": self._token,
                "topics": topics,
                "fromBlock": from_block,
                "toBlock": to_block,
            }],
        )

        logs: list[TransferLog] = []
        for raw in raw_logs or []:
            try:
                logs.append(TransferLog.from_rpc_log(raw))
            except (KeyError, ValueError) as e:
                logger.debug(f"Skipping undecodable log: {e}")
        logs.sort(key=lambda log: (log.block_number, log.log_index))
        return logs

    async def get_transfer_logs_to(
        self,
        address: str,
        timestamp: float | None,
        block_limit: int | None = None,
    ) -> list[TransferLog]:
        """USDC transfers received by `address`, oldest first."""
        return await self._get_transfer_logs(None, address, timestamp, block_limit)

    async def get_transfer_logs_from_to(
        self,
        sender: str,
        recipient: str | None = None,
        amount: AmountType | None = None,
        timestamp: float | None = None,
        block_limit: int | None = None,
    ) -> list[TransferLog]:
        """
        USDC transfers sent by `sender`, oldest first.

        Args:
            sender: Paying address
            recipient: Only transfers to this address
            amount: Only transfers of exactly this many tokens
            timestamp: Anchor for the block window (None scans all history)
            block_limit: Blocks after the anchor to scan (None scans to latest)
        """
        logs = await self._get_transfer_logs(sender, recipient, timestamp, block_limit)
        if amount is None:
            return logs

        decimals = await self.get_decimals()
        expected = abi.to_base_units(to_decimal(amount), decimals)
        return [log for log in logs if log.value == expected]

    async def watch_transfers_to(
        self,
        address: str,
        poll_interval: float | None = None,
        from_block: int | None = None,
    ) -> AsyncIterator[list[TransferLog]]:
        """
        Poll for USDC transfers received by `address`.

        Yields every non-empty batch of new transfers, oldest first, until the
        caller stops iterating. Watching starts after the current head unless
        `from_block` is given.

        Usage:
            async for logs in chain.watch_transfers_to(operator_evm):
                for log in logs:
                    print(await chain.decode_memo(log.transaction_hash))
        """
        interval = self._config.watch_poll_interval if poll_interval is None else poll_interval
        next_block = from_block if from_block is not None else await self.get_block_number() + 1
        logger.info(f"Watching USDC transfers to {address} from block {next_block}")

        while True:
            head = await self.get_block_number()
            if head >= next_block:
                logs = await self._fetch_transfer_logs(None, address, hex(next_block), hex(head))
                next_block = head + 1
                if logs:
                    yield logs
            await asyncio.sleep(interval)

    # ─── Memos ───────────────────────────────────────────────────────

    async def get_transaction_input(self, tx_hash: str) -> str | None:
        tx = await self._rpc("eth_getTransactionByHash", [tx_hash])
        if not tx:
            return None
        return tx.get("input")

    async def decode_memo(self, tx_hash: str) -> str:
        """Recover the memo appended to a USDC transfer's call data."""
        return abi.decode_memo(await self.get_transaction_input(tx_hash))
