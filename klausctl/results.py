"""Tool results, their text extraction and the context handed to tool handlers."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any

from klausctl import config as _config
from klausctl.config import Config
from klausctl.paths import Paths

TERMINAL_STATUSES = frozenset({"completed", "error", "failed"})


@dataclass
class TextContent:
    """A plain text item inside a tool result."""

    text: str
    type: str = "text"

    def to_dict(self) -> dict[str, Any]:
        """Return the item as plain JSON-ready data."""
        return {"type": self.type, "text": self.text}


@dataclass
class ToolResult:
    """The outcome of a tool call: a list of content items and an error flag."""

    content: list[Any] = field(default_factory=list)
    is_error: bool = False


def text_result(text: str) -> ToolResult:
    """Return a successful result holding one text item."""
    return ToolResult(content=[TextContent(text)])


def error_result(message: str) -> ToolResult:
    """Return an error result holding the message as text."""
    return ToolResult(content=[TextContent(message)], is_error=True)


def _json_default(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def json_result(value: Any) -> ToolResult:
    """Serialize value as indented JSON and return it as a text result."""
    try:
        data = json.dumps(value, indent=2, ensure_ascii=False, default=_json_default)
    except (TypeError, ValueError) as exc:
        return error_result(f"marshaling result: {exc}")
    return text_result(data)


def extract_text(result: ToolResult | None) -> str:
    """Join the text items of a result with newlines, or return its content as JSON."""
    if result is None:
        return ""
    parts = [item.text for item in result.content if isinstance(item, TextContent)]
    if parts:
        return "\n".join(parts)
    try:
        return json.dumps(result.content or None, default=_json_default, separators=(",", ":"))
    except (TypeError, ValueError):
        return ""


def parse_status_field(result: ToolResult | None) -> str:
    """Return the "status" field of a JSON result, else the result's text."""
    text = extract_text(result)
    if not text:
        return ""
    try:
        parsed = json.loads(text)
    except ValueError:
        return text
    if isinstance(parsed, dict):
        status = parsed.get("status")
        if isinstance(status, str) and status:
            return status
    return text


def is_terminal_status(status: str) -> bool:
    """Whether an agent status means the task has finished."""
    return status in TERMINAL_STATUSES


@dataclass
class ServerContext:
    """Shared state passed to tool handlers."""

    paths: Paths

    def instance_paths(self, name: str) -> Paths:
        """Return the paths scoped to the named instance."""
        return self.paths.for_instance(name)

    def load_instance_config(self, name: str) -> Config:
        """Load the configuration of the named instance."""
        return _config.load(self.instance_paths(name).config_file)