"""EVM JSON-RPC provider and contract transport."""
from .provider import RpcWalletProvider
from .rpc import JsonRpcClient
from .transport import PendingRpcTransaction, RpcContractTransport

__all__ = [
    "JsonRpcClient",
    "PendingRpcTransaction",
    "RpcContractTransport",
    "RpcWalletProvider",
]
