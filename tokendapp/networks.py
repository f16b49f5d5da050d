"""Static table of supported networks."""
from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from .config import NetworkConfig
from .errors import UnknownNetworkError


class NetworkRegistry:
    """Read-only lookup of ``NetworkConfig`` by key or chain id.

    The key set is fixed when the registry is built.
    """

    def __init__(self, networks: Mapping[str, NetworkConfig]) -> None:
        self._networks = MappingProxyType(dict(networks))

    def get(self, key: str) -> NetworkConfig:
        try:
            return self._networks[key]
        except KeyError:
            raise UnknownNetworkError(f"Network '{key}' not configured.") from None

    def by_chain_id(self, chain_id: int) -> NetworkConfig | None:
        for network in self._networks.values():
            if network.chain_id == chain_id:
                return network
        return None

    def explorer_tx_url(self, key: str, tx_hash: str) -> str | None:
        """Block-explorer link for a transaction, None if the network has no explorer."""
        base = self.get(key).block_explorer_url
        if not base:
            return None
        return f"{base.rstrip('/')}/tx/{tx_hash}"

    def keys(self) -> list[str]:
        return list(self._networks)

    def __contains__(self, key: object) -> bool:
        return key in self._networks

    def __iter__(self) -> Iterator[NetworkConfig]:
        return iter(self._networks.values())

    def __len__(self) -> int:
        return len(self._networks)
