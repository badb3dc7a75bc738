from typing import Any

from rest_bridge.core.errors import ValidationError
from rest_bridge.tools.base import ToolParameter

PATH_PARAMETER = ToolParameter(
    name="path",
    type="string",
    description="Resource path relative to the API base URL (e.g., '/users/1').",
)

HEADERS_PARAMETER = ToolParameter(
    name="headers",
    type="object",
    description="Extra HTTP headers to send with this request.",
    required=False,
)

_QUERY_SCALARS = (str, int, float, bool)


def clean_path(path: str) -> str:
    """Reject empty paths and absolute URLs; return the path with one leading slash.

    Trailing slashes are kept. Some backends route "/users/" and "/users" differently.
    """
    path = path.strip()
    if not path:
        raise ValidationError("'path' must not be empty.")
    if "://" in path or path.startswith("//"):
        raise ValidationError(
            f"'path' must be relative to the API base URL, got '{path}'."
        )
    return "/" + path.lstrip("/")


def clean_headers(headers: dict[str, Any] | None) -> dict[str, str] | None:
    if not headers:
        return None
    cleaned: dict[str, str] = {}
    for name, value in headers.items():
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ValidationError(f"Header '{name}' must be a string, got {type(value).__name__}.")
        cleaned[name] = str(value)
    return cleaned


def clean_query(query: dict[str, Any] | None) -> dict[str, Any] | None:
    """Query values must be scalars or lists of scalars."""
    if not query:
        return None
    for name, value in query.items():
        values = value if isinstance(value, list) else [value]
        for item in values:
            if not isinstance(item, _QUERY_SCALARS):
                raise ValidationError(
                    f"Query parameter '{name}' must be a string, number, boolean or a list of them."
                )
    return query
