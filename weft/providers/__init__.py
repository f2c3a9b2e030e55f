"""Model backends."""

from .base import BaseLLMProvider, CircuitBreakerConfig, RetryConfig
from .scripted import ScriptedLLMProvider

__all__ = ["BaseLLMProvider", "RetryConfig", "CircuitBreakerConfig", "ScriptedLLMProvider"]
