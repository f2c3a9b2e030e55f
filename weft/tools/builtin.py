"""Built-in tools: transfer_to_agent, exit_loop and set_model_response."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..types import ToolDefinition
from .context import ToolContext
from .schema import PydanticSchema

TRANSFER_TO_AGENT = "transfer_to_agent"
EXIT_LOOP = "exit_loop"
SET_MODEL_RESPONSE = "set_model_response"


class TransferParams(BaseModel):
    agent_name: str = Field(..., description="Name of the agent to hand the conversation to")


async def _transfer_execute(params: TransferParams, ctx: ToolContext) -> dict[str, Any]:
    # Raises TransferError for names outside the agent's reachable set.
    target = ctx.agent.resolve_transfer_target(params.agent_name)
    ctx.actions.transfer_to_agent = target.name
    return {"transferred_to": target.name}


def transfer_tool(targets: list[tuple[str, str]]) -> ToolDefinition:
    """Build the transfer tool; ``targets`` are (name, description) pairs shown to the model."""
    lines = "\n".join(f"- {name}: {desc}" if desc else f"- {name}" for name, desc in targets)
    return ToolDefinition(
        name=TRANSFER_TO_AGENT,
        description=(
            "Hand the conversation to another agent better suited to answer.\n"
            f"Available agents:\n{lines}"
        ),
        parameters=PydanticSchema(TransferParams),
        execute=_transfer_execute,
    )


class ExitLoopParams(BaseModel):
    pass


def _exit_loop_execute(params: ExitLoopParams, ctx: ToolContext) -> dict[str, Any]:
    ctx.actions.escalate = True
    ctx.actions.skip_summarization = True
    return {}


exit_loop_tool = ToolDefinition(
    name=EXIT_LOOP,
    description="Stop the enclosing loop. Call this only when the task is complete.",
    parameters=PydanticSchema(ExitLoopParams),
    execute=_exit_loop_execute,
)


def set_model_response_tool(output_schema: type[BaseModel]) -> ToolDefinition:
    """Lets a model that also has tools deliver its final structured answer."""

    def _execute(params: BaseModel, ctx: ToolContext) -> dict[str, Any]:
        return params.model_dump(mode="json")

    return ToolDefinition(
        name=SET_MODEL_RESPONSE,
        description="Set your final response using the required output schema.",
        parameters=PydanticSchema(output_schema),
        execute=_execute,
    )
