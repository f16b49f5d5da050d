"""View listener protocol: what the core tells its UI."""
from typing import Protocol

from ..models import StatusMessage, ViewState


class ViewListener(Protocol):
    """Receives refresh and status notifications from the orchestrator."""

    async def on_refresh(self, view: ViewState) -> None: ...

    async def on_status(self, status: StatusMessage) -> None: ...
