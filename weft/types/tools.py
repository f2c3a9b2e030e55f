"""Tool types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ToolSchema(Protocol):
    def parse(self, raw: Any) -> Any: ...
    def to_json_schema(self) -> dict: ...


@dataclass
class AuthConfig:
    """Credential a tool needs before it may run."""

    credential_key: str
    scheme: str = "api_key"
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "credential_key": self.credential_key,
            "scheme": self.scheme,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuthConfig:
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class ToolConfirmation:
    hint: str = ""
    confirmed: bool = False
    payload: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"hint": self.hint, "confirmed": self.confirmed, "payload": self.payload}


@dataclass
class ToolDefinition:
    name: str
    description: str
    parameters: ToolSchema
    execute: Any  # (params, tool_context) -> Any | Awaitable[Any]
    is_long_running: bool = False
    # Ordering dependency: runs alone, in call order, never concurrently.
    sequential: bool = False
    # bool, or (args, tool_context) -> bool | Awaitable[bool]
    require_confirmation: Any = False
    auth_config: AuthConfig | None = None

    def to_declaration(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters.to_json_schema(),
        }


@dataclass
class ToolResult:
    call_id: str
    name: str
    response: dict[str, Any] = field(default_factory=dict)
    error_code: str | None = None

    @property
    def success(self) -> bool:
        return self.error_code is None
