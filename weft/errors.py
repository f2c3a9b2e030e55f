"""Structured error hierarchy. Every failure the engine reports carries a code."""

from __future__ import annotations


class WeftError(Exception):
    def __init__(self, code: str, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.cause = cause

    @classmethod
    def wrap(cls, err: Exception) -> WeftError:
        if isinstance(err, WeftError):
            return err
        return WeftError("UNKNOWN", str(err) or type(err).__name__, err)


class ValidationError(WeftError):
    """Tool arguments did not match the declared schema."""

    def __init__(self, tool_name: str, message: str, cause: Exception | None = None) -> None:
        super().__init__("VALIDATION_ERROR", f'Invalid arguments for "{tool_name}": {message}', cause)
        self.tool_name = tool_name


class TransferError(WeftError):
    def __init__(self, target: str, available: list[str] | None = None) -> None:
        available = available or []
        message = f'Agent "{target}" is not a valid transfer target'
        if available:
            message += f"; choose one of: {', '.join(available)}"
        super().__init__("TRANSFER_ERROR", message)
        self.target = target
        self.available = available


class ToolFault(WeftError):
    def __init__(
        self,
        tool_name: str,
        message: str,
        cause: Exception | None = None,
        code: str = "TOOL_FAULT",
    ) -> None:
        super().__init__(code, message, cause)
        self.tool_name = tool_name


class ToolNotFoundError(ToolFault):
    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f'Tool "{tool_name}" not found', code="TOOL_NOT_FOUND")


class ToolTimeoutError(ToolFault):
    def __init__(self, tool_name: str, timeout_seconds: float) -> None:
        super().__init__(
            tool_name,
            f'Tool "{tool_name}" timed out after {timeout_seconds}s',
            code="TOOL_TIMEOUT",
        )
        self.timeout_seconds = timeout_seconds


class ModelFault(WeftError):
    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
        code: str = "MODEL_FAULT",
    ) -> None:
        super().__init__(code, message, cause)
        self.provider = provider
        self.status_code = status_code


class ModelRateLimitError(ModelFault):
    def __init__(self, provider: str, retry_after: float | None = None) -> None:
        super().__init__(
            provider, f"Rate limited by {provider}", 429, code="MODEL_RATE_LIMIT"
        )
        self.retry_after = retry_after


class CostLimitExceeded(WeftError):
    def __init__(self, limit: int) -> None:
        super().__init__("COST_LIMIT_EXCEEDED", f"Max number of llm calls ({limit}) exceeded")
        self.limit = limit


class AuthRequired(WeftError):
    """Raised by a tool body to ask for a credential before it can run."""

    def __init__(self, auth_config, message: str = "Authorization required") -> None:
        super().__init__("AUTH_REQUIRED", message)
        self.auth_config = auth_config


class ConfirmationRequired(WeftError):
    """Raised by a tool body to ask the user to approve the call."""

    def __init__(self, hint: str = "", payload=None) -> None:
        super().__init__("CONFIRMATION_REQUIRED", hint or "Confirmation required")
        self.hint = hint
        self.payload = payload


class AgentTreeError(WeftError):
    def __init__(self, message: str) -> None:
        super().__init__("AGENT_TREE_ERROR", message)


class InstructionError(WeftError):
    def __init__(self, key: str) -> None:
        super().__init__("INSTRUCTION_ERROR", f"Context variable not found: `{key}`")
        self.key = key


class SessionNotFoundError(WeftError):
    def __init__(self, session_id: str) -> None:
        super().__init__("SESSION_NOT_FOUND", f"Session not found: {session_id}")
        self.session_id = session_id
