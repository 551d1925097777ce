"""
Domain errors for the content lifecycle.
Each error carries a stable `code`; the API maps codes to HTTP status in one exception handler.
"""
from typing import Any, Optional


class StudioError(ValueError):
    """Base error: human-readable message + stable code + optional context."""

    code = "studio_error"

    def __init__(self, message: Optional[str] = None, **context: Any) -> None:
        self.message = message or self.default_message()
        self.context = context
        super().__init__(self.message)

    def default_message(self) -> str:
        return self.code.replace("_", " ").capitalize()


class InvalidTransition(StudioError):
    """Requested status change is not permitted from the current state."""

    code = "invalid_transition"

    def __init__(self, from_status: Any, to_status: Any, message: Optional[str] = None) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            message or f"Invalid transition: {_label(from_status)} -> {_label(to_status)}",
            from_status=_label(from_status),
            to_status=_label(to_status),
        )


class ContentValidationError(StudioError):
    """Request is well-formed but violates a rule (e.g. schedule time not in the future)."""

    code = "validation_error"


class NotFound(StudioError):
    """Referenced item (or image, user) is not present in the caller's scope."""

    code = "not_found"


class StoreError(StudioError):
    """Persistence failure; no partial state change is committed."""

    code = "store_error"


class StaleItem(StoreError):
    """Compare-and-set failed: the item changed between read and write."""

    code = "stale_item"


class ProviderError(StudioError):
    """Generation provider failed."""

    code = "provider_error"

    def default_message(self) -> str:
        return "Content generation failed."


class ApiKeyRequired(ProviderError):
    """Video generation needs an API key and none is configured."""

    code = "api_key_required"

    def default_message(self) -> str:
        return "Please select an API key to generate videos."


class ApiKeyInvalid(ProviderError):
    """Provider rejected the configured API key."""

    code = "api_key_invalid"

    def default_message(self) -> str:
        return "Your API key is invalid. Please select a new one."


class AuthError(StudioError):
    """Login failed or session is missing / expired."""

    code = "not_authenticated"

    def default_message(self) -> str:
        return "Not authenticated"


def _label(status: Any) -> str:
    if status is None:
        return "none"
    return getattr(status, "value", str(status))
