"""Content types: the parts a model turn is made of."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Literal

Role = Literal["user", "model"]

CALL_ID_PREFIX = "wf-"


def new_call_id() -> str:
    return f"{CALL_ID_PREFIX}{uuid.uuid4().hex[:12]}"


@dataclass
class FunctionCall:
    name: str
    args: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_call_id)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "args": dict(self.args)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FunctionCall:
        return cls(name=data["name"], args=dict(data.get("args") or {}), id=data["id"])


@dataclass
class FunctionResponse:
    name: str
    response: dict[str, Any]
    id: str


@dataclass
class ExecutableCode:
    code: str
    language: str = "python"


@dataclass
class CodeExecutionResult:
    outcome: Literal["ok", "failed"]
    output: str = ""


@dataclass
class Part:
    text: str | None = None
    thought: bool = False
    function_call: FunctionCall | None = None
    function_response: FunctionResponse | None = None
    executable_code: ExecutableCode | None = None
    code_execution_result: CodeExecutionResult | None = None

    @classmethod
    def from_text(cls, text: str, thought: bool = False) -> Part:
        return cls(text=text, thought=thought)

    @classmethod
    def from_function_call(cls, name: str, args: dict[str, Any] | None = None, id: str | None = None) -> Part:
        call = FunctionCall(name=name, args=args or {})
        if id:
            call.id = id
        return cls(function_call=call)

    @classmethod
    def from_function_response(cls, name: str, response: dict[str, Any], id: str) -> Part:
        return cls(function_response=FunctionResponse(name=name, response=response, id=id))


@dataclass
class Content:
    role: Role
    parts: list[Part] = field(default_factory=list)

    @classmethod
    def from_text(cls, role: Role, text: str) -> Content:
        return cls(role=role, parts=[Part.from_text(text)])

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts if p.text and not p.thought)
