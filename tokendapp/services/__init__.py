"""Service modules"""
from .transaction_log import TransactionLog
from .orchestrator import DAppContext, Orchestrator

__all__ = ["TransactionLog", "DAppContext", "Orchestrator"]
