"""
weft — orchestration engine for trees of LLM agents
===================================================

## Mental model

- **Agents form a static tree.** `LlmAgent` leaves talk to a model through a
  fixed processor chain (`weft.flows.Flow`); `SequentialAgent`,
  `ParallelAgent` and `LoopAgent` compose children. An `LlmAgent` with
  sub-agents can hand the conversation over with `transfer_to_agent`.
- **Everything is an event.** Agents stream `Event`s upward as they are
  produced; each is appended once to the session's `EventLog`.
- **Branches isolate context.** Parallel children and transfer targets run
  on derived branches and only see their ancestors' events.
- **Resumable by replay.** With `RunConfig(resumable=True)` composite
  checkpoints are recorded as events, and `Runner.resume` continues an
  interrupted invocation from them.

## Quick start

```python
from weft import InMemoryRunner, LlmAgent, tool

@tool
def lookup(city: str) -> dict:
    "Current weather for a city."
    return {"city": city, "forecast": "sunny"}

agent = LlmAgent("assistant", provider=my_provider, instruction="Be brief.", tools=[lookup])
runner = InMemoryRunner(agent)
session = await runner.session_service.create_session(app_name="weft", user_id="u1")
async for event in runner.run(user_id="u1", session_id=session.id, new_message="Weather in Oslo?"):
    print(event.author, event.text)
```
"""

from .agents import (
    AgentCallbacks,
    BaseAgent,
    CallbackChain,
    LlmAgent,
    LoopAgent,
    ParallelAgent,
    SequentialAgent,
)
from .config import ContextCacheConfig, GenerationConfig, RunConfig, StreamingMode, ToolExecutionConfig
from .errors import WeftError
from .runtime import CallbackContext, InvocationContext
from .runtime.runner import InMemoryRunner, Runner
from .tools import ToolContext, define_tool, tool
from .types import Content, Event, EventActions, LlmRequest, LlmResponse, Part

__version__ = "0.3.0"

__all__ = [
    "BaseAgent",
    "LlmAgent",
    "SequentialAgent",
    "ParallelAgent",
    "LoopAgent",
    "AgentCallbacks",
    "CallbackChain",
    "Runner",
    "InMemoryRunner",
    "InvocationContext",
    "CallbackContext",
    "ToolContext",
    "define_tool",
    "tool",
    "RunConfig",
    "StreamingMode",
    "GenerationConfig",
    "ContextCacheConfig",
    "ToolExecutionConfig",
    "Content",
    "Part",
    "Event",
    "EventActions",
    "LlmRequest",
    "LlmResponse",
    "WeftError",
]
