from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class ToolParameter:
    name: str
    type: str
    description: str
    required: bool = True
    enum: list[str] | None = None


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    parameters: list[ToolParameter] = field(default_factory=list)


class Tool(Protocol):
    @property
    def definition(self) -> ToolDefinition: ...

    async def execute(self, **kwargs: Any) -> Any: ...


@dataclass(frozen=True)
class ToolCall:
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TextContent:
    text: str
    type: str = "text"


@dataclass(frozen=True)
class ToolResult:
    content: list[TextContent]
    is_error: bool = False

    @classmethod
    def success(cls, text: str) -> "ToolResult":
        return cls(content=[TextContent(text)])

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(content=[TextContent(message)], is_error=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": [{"type": c.type, "text": c.text} for c in self.content],
            "isError": self.is_error,
        }
