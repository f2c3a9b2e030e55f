"""Request and response stages, in their fixed order."""

from __future__ import annotations

from .auth import AuthRequestProcessor
from .base import RequestProcessor, ResponseProcessor
from .basic import BasicRequestProcessor
from .caching import CachingRequestProcessor
from .code_execution import CodeExecutionRequestProcessor, CodeExecutionResponseProcessor
from .confirmation import ConfirmationRequestProcessor
from .contents import ContentsRequestProcessor, build_contents
from .identity import IdentityRequestProcessor
from .instructions import InstructionsRequestProcessor, inject_session_state
from .output_schema import OutputSchemaRequestProcessor
from .planning import PlanningRequestProcessor, PlanningResponseProcessor


def default_request_processors() -> list[RequestProcessor]:
    # Order matters: history needs the instruction split, planning needs final history.
    return [
        BasicRequestProcessor(),
        AuthRequestProcessor(),
        ConfirmationRequestProcessor(),
        InstructionsRequestProcessor(),
        IdentityRequestProcessor(),
        ContentsRequestProcessor(),
        CachingRequestProcessor(),
        PlanningRequestProcessor(),
        CodeExecutionRequestProcessor(),
        OutputSchemaRequestProcessor(),
    ]


def default_response_processors() -> list[ResponseProcessor]:
    return [PlanningResponseProcessor(), CodeExecutionResponseProcessor()]


__all__ = [
    "RequestProcessor",
    "ResponseProcessor",
    "default_request_processors",
    "default_response_processors",
    "BasicRequestProcessor",
    "AuthRequestProcessor",
    "ConfirmationRequestProcessor",
    "InstructionsRequestProcessor",
    "IdentityRequestProcessor",
    "ContentsRequestProcessor",
    "CachingRequestProcessor",
    "PlanningRequestProcessor",
    "CodeExecutionRequestProcessor",
    "OutputSchemaRequestProcessor",
    "PlanningResponseProcessor",
    "CodeExecutionResponseProcessor",
    "build_contents",
    "inject_session_state",
]
