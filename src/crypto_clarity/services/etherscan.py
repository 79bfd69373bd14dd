"""Async client for the Etherscan account, contract and proxy APIs.

Every call goes through ``_call`` which applies the configured timeout and
raises ``EtherscanError`` for transport failures and API-level errors. An
empty result ("No transactions found") is not an error.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from crypto_clarity.core.settings import settings

logger = logging.getLogger(__name__)

EMPTY_CODE = "0x"
_EMPTY_MESSAGES = ("No transactions found", "No records found", "No data found")


class EtherscanError(RuntimeError):
    """Raised when a lookup fails, times out or is rejected by the API."""


class EtherscanClient:
    """Thin wrapper over ``httpx.AsyncClient`` for Etherscan lookups."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.etherscan_api_key
        self.base_url = base_url or settings.etherscan_api_url
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.etherscan_timeout_seconds
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def _call(self, module: str, action: str, **params: Any) -> Any:
        client = await self._ensure_client()
        query = {"module": module, "action": action, **params}
        if self.api_key:
            query["apikey"] = self.api_key

        try:
            response = await client.get(self.base_url, params=query)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as exc:
            raise EtherscanError(f"{module}.{action} timed out") from exc
        except httpx.HTTPError as exc:
            raise EtherscanError(f"{module}.{action} failed: {exc}") from exc
        except ValueError as exc:
            raise EtherscanError(f"{module}.{action} returned invalid JSON") from exc

        if module == "proxy":
            if "error" in data:
                raise EtherscanError(f"{module}.{action} error: {data['error']}")
            return data.get("result")

        if str(data.get("status")) == "1":
            return data.get("result")
        message = str(data.get("message", ""))
        if message.startswith(_EMPTY_MESSAGES):
            return []
        raise EtherscanError(f"{module}.{action} rejected: {message} {data.get('result', '')}".strip())

    async def get_balance_wei(self, address: str) -> int:
        result = await self._call("account", "balance", address=address, tag="latest")
        return int(result)

    async def get_code(self, address: str) -> str:
        result = await self._call("proxy", "eth_getCode", address=address, tag="latest")
        return result or EMPTY_CODE

    async def is_contract(self, address: str) -> bool:
        return (await self.get_code(address)) != EMPTY_CODE

    async def get_transaction_count(self, address: str) -> int:
        result = await self._call(
            "proxy", "eth_getTransactionCount", address=address, tag="latest"
        )
        return int(result, 16) if result else 0

    async def _account_list(
        self, action: str, address: str, *, limit: int, sort: str
    ) -> list[dict[str, Any]]:
        result = await self._call(
            "account",
            action,
            address=address,
            startblock=0,
            endblock=99999999,
            page=1,
            offset=limit,
            sort=sort,
        )
        return list(result or [])[:limit]

    async def get_transactions(
        self, address: str, *, limit: int = 10, sort: str = "desc"
    ) -> list[dict[str, Any]]:
        return await self._account_list("txlist", address, limit=limit, sort=sort)

    async def get_token_transfers(
        self, address: str, *, limit: int = 10, sort: str = "desc"
    ) -> list[dict[str, Any]]:
        return await self._account_list("tokentx", address, limit=limit, sort=sort)

    async def get_internal_transactions(
        self, address: str, *, limit: int = 10, sort: str = "desc"
    ) -> list[dict[str, Any]]:
        return await self._account_list("txlistinternal", address, limit=limit, sort=sort)

    async def is_verified_contract(self, address: str) -> bool:
        """A contract is verified when Etherscan will hand out its ABI."""
        try:
            await self._call("contract", "getabi", address=address)
        except EtherscanError as exc:
            if "not verified" in str(exc).lower():
                return False
            raise
        return True

    async def get_source_code(self, address: str) -> dict[str, Any] | None:
        result = await self._call("contract", "getsourcecode", address=address)
        if isinstance(result, list) and result:
            return result[0]
        return None

    async def get_contract_creation(self, address: str) -> dict[str, Any] | None:
        result = await self._call(
            "contract", "getcontractcreation", contractaddresses=address
        )
        if isinstance(result, list) and result:
            return result[0]
        return None

    async def get_transaction(self, tx_hash: str) -> dict[str, Any] | None:
        return await self._call("proxy", "eth_getTransactionByHash", txhash=tx_hash)

    async def get_block_timestamp(self, block_number: int) -> int | None:
        result = await self._call("block", "getblockreward", blockno=block_number)
        if isinstance(result, dict) and result.get("timeStamp"):
            return int(result["timeStamp"])
        return None

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _EtherscanClientSingleton:
    _instance: EtherscanClient | None = None

    @classmethod
    def get_instance(cls) -> EtherscanClient:
        if cls._instance is None:
            if not settings.etherscan_api_key:
                logger.warning("ETHERSCAN_API_KEY is not set; on-chain lookups will be rate-limited")
            cls._instance = EtherscanClient()
        return cls._instance


def get_etherscan_client() -> EtherscanClient:
    """Return the process-wide Etherscan client."""
    return _EtherscanClientSingleton.get_instance()
