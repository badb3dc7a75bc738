import json
from typing import Any

MAX_ERROR_BODY_CHARS = 2_000


class BridgeError(Exception):
    """Base class for failures that are reported back to the caller as tool errors."""


class ValidationError(BridgeError):
    pass


class UnknownToolError(BridgeError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class TransportError(BridgeError):
    """Network failure, timeout or refused connection."""


class DecodeError(BridgeError):
    pass


class BackendError(BridgeError):
    """The backend answered with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        body: Any = None,
        reason: str = "",
        retry_after: float | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.reason = reason
        self.retry_after = retry_after
        super().__init__(self._format())

    def _format(self) -> str:
        message = f"HTTP {self.status_code}"
        if self.reason:
            message += f" {self.reason}"
        if self.body in (None, ""):
            return message
        body = self.body if isinstance(self.body, str) else json.dumps(self.body, ensure_ascii=False, default=str)
        if len(body) > MAX_ERROR_BODY_CHARS:
            body = body[:MAX_ERROR_BODY_CHARS] + "..."
        return f"{message}: {body}"
