"""Agent tree: the leaf LLM agent and the workflow composites."""

from .base import BaseAgent
from .callbacks import AgentCallbacks, CallbackChain
from .llm_agent import LlmAgent
from .loop import LoopAgent
from .parallel import ParallelAgent
from .sequential import SequentialAgent

__all__ = [
    "BaseAgent",
    "LlmAgent",
    "SequentialAgent",
    "ParallelAgent",
    "LoopAgent",
    "AgentCallbacks",
    "CallbackChain",
]
