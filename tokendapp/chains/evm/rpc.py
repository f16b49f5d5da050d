"""EVM JSON-RPC client with fallback support for read methods."""
import logging
import ssl
from itertools import count
from typing import Any

import aiohttp
import certifi

from ...config import ProviderConfig
from ...errors import ProviderRpcError

logger = logging.getLogger(__name__)

# Safe to re-send to another endpoint: they never change chain state.
IDEMPOTENT_METHODS = frozenset(
    {
        "eth_accounts",
        "eth_blockNumber",
        "eth_call",
        "eth_chainId",
        "eth_getLogs",
        "eth_getTransactionReceipt",
        "net_version",
    }
)


class JsonRpcClient:
    """JSON-RPC 2.0 over HTTP.

    Read methods fall back to the next endpoint on transport failure.
    Everything else (transaction submission, wallet prompts) is sent once
    to the current endpoint.
    """

    def __init__(self, config: ProviderConfig) -> None:
        if not config.rpc_endpoints:
            raise ValueError("At least one RPC endpoint is required")
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0
        self._ids = count(1)

    async def _post(self, rpc_url: str, payload: dict[str, Any]) -> dict[str, Any]:
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(
                rpc_url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                return await response.json(content_type=None)

    @staticmethod
    def _unwrap(result: dict[str, Any]) -> Any:
        error = result.get("error")
        if error:
            if isinstance(error, dict):
                raise ProviderRpcError(
                    int(error.get("code", -32000)),
                    str(error.get("message", "RPC error")),
                    error.get("data"),
                )
            raise ProviderRpcError(-32000, str(error))
        return result.get("result")

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        """Make an RPC call; JSON-RPC errors raise ``ProviderRpcError``."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }

        if method not in IDEMPOTENT_METHODS:
            rpc_url = self.endpoints[self.current_rpc_index]
            return self._unwrap(await self._post(rpc_url, payload))

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                result = await self._post(rpc_url, payload)
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

            if rpc_index != self.current_rpc_index:
                logger.info("Switched to RPC endpoint: %s", rpc_url)
                self.current_rpc_index = rpc_index
            return self._unwrap(result)

        raise ConnectionError(f"All RPC endpoints failed. Last error: {last_error}")
