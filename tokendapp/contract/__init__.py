"""ERC-20 contract binding."""
from .binding import ContractBinding

__all__ = ["ContractBinding"]
