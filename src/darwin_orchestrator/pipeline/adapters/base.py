"""Gateway adapter protocol.

Adapters perform exactly one HTTP exchange and report what came back. They
never retry and never interpret the payload; classification is the attempt
executor's job.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Protocol, runtime_checkable


@dataclasses.dataclass(frozen=True, slots=True)
class GatewayReply:
    """Raw reply from one gateway call.

    `payload` is the decoded JSON body, or None when the body was not JSON.
    `text` keeps the raw body for error messages.
    """

    status_code: int
    payload: Any = None
    text: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@runtime_checkable
class GatewayAdapter(Protocol):
    """Anything that can post a chat-completions body to the gateway.

    Connection failures and timeouts are raised, not returned, so the
    executor can classify them as transport failures.
    """

    async def post(self, body: dict[str, Any]) -> GatewayReply: ...  # noqa: D102
