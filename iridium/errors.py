"""Error taxonomy shared by the chat flow.

HTTP mapping lives in ``iridium.web.server``; tool-level errors never reach
the HTTP client and are fed back to the model as tool-error results instead.
"""


class IridiumError(Exception):
    """Base class for all application errors."""


class ValidationError(IridiumError):
    """Malformed request body. Maps to 400."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class Unauthorized(IridiumError):
    """Missing or invalid session. Maps to 401."""


class ThreadNotFound(IridiumError):
    """Thread does not exist for the caller. Maps to 404."""

    def __init__(self, thread_id: str) -> None:
        super().__init__(f"Thread not found: {thread_id}")
        self.thread_id = thread_id


class ToolArgumentError(IridiumError):
    """The model supplied arguments a tool cannot accept."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(f"Invalid arguments for '{tool_name}': {message}")
        self.tool_name = tool_name
        self.message = message


class UpstreamProviderError(IridiumError):
    """A billing, model or store call failed."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class PersistenceError(IridiumError):
    """Saving the conversation failed."""
