import functools
import inspect
import json
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


class ErrorCode(str, Enum):
    """Closed set of failure kinds surfaced to callers."""
    PROVIDER_NOT_FOUND = "PROVIDER_NOT_FOUND"
    PROVIDER_CONNECTION_FAILED = "PROVIDER_CONNECTION_FAILED"
    PROVIDER_DISCONNECTION_FAILED = "PROVIDER_DISCONNECTION_FAILED"
    ACCOUNT_FETCH_FAILED = "ACCOUNT_FETCH_FAILED"
    TRANSACTION_FETCH_FAILED = "TRANSACTION_FETCH_FAILED"
    ACCOUNT_REFRESH_FAILED = "ACCOUNT_REFRESH_FAILED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    METHOD_NOT_SUPPORTED = "METHOD_NOT_SUPPORTED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class PulseError(Exception):
    """
    Tagged error raised by the dispatch layer and by every adapter.

    Carries enough metadata (provider, user, account, failing method) to
    localize a fault without inspecting internals.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        provider: Optional[str] = None,
        user_id: Optional[str] = None,
        account_id: Optional[str] = None,
        method: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = ErrorCode(code)
        self.provider = provider
        self.user_id = user_id
        self.account_id = account_id
        self.method = method
        self.details = details or {}
        super().__init__(message)

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        code: ErrorCode,
        action: str,
        **metadata: Any,
    ) -> "PulseError":
        """
        Wrap an arbitrary exception into a PulseError.

        An exception that is already a PulseError is returned unchanged so
        that errors crossing several wrapping layers are never double-wrapped.

        Args:
            exc: The exception to wrap
            code: Error code for the failed operation
            action: Human readable prefix, e.g. "Failed to fetch accounts"
            **metadata: provider, user_id, account_id, method, details

        Returns:
            PulseError: The tagged error
        """
        if isinstance(exc, cls):
            return exc
        reason = str(exc) or type(exc).__name__
        return cls(f"{action}: {reason}", code, **metadata)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for consistent response format."""
        context = {
            key: value
            for key, value in (
                ("provider", self.provider),
                ("user_id", self.user_id),
                ("account_id", self.account_id),
                ("method", self.method),
            )
            if value is not None
        }
        if self.details:
            context["details"] = self.details
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "context": context,
            }
        }

    def to_detailed_string(self) -> str:
        """Creates a formatted error message with all relevant metadata."""
        parts = [f"PulseError: {self.message}", f"Code: {self.code.value}"]

        if self.provider:
            parts.append(f"Provider: {self.provider}")
        if self.method:
            parts.append(f"Method: {self.method}")
        if self.user_id:
            parts.append(f"User ID: {self.user_id}")
        if self.account_id:
            parts.append(f"Account ID: {self.account_id}")
        if self.details:
            parts.append(f"Details: {json.dumps(self.details, default=str)}")

        return "\n".join(parts)

    def __repr__(self) -> str:
        return f"PulseError(code={self.code.value!r}, message={self.message!r}, provider={self.provider!r})"


class ProviderAPIError(Exception):
    """
    Raised by an adapter's HTTP connector when a provider answers with an error.

    Adapter-local: adapters re-wrap it into a PulseError before it reaches
    the dispatch layer.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


def _call_arguments(signature: inspect.Signature, args: tuple, kwargs: Dict[str, Any]) -> Dict[str, Any]:
    """Arguments of a call by name, even when the call did not match the signature."""
    try:
        return dict(signature.bind_partial(*args, **kwargs).arguments)
    except TypeError:
        arguments = dict(kwargs)
        # Positional values win over clashing keywords
        arguments.update(zip(signature.parameters, args))
        return arguments


def wrap_errors(code: ErrorCode, action: str) -> Callable[[F], F]:
    """
    Decorate an async operation so every failure leaves it as a PulseError.

    PulseErrors are re-raised unchanged. Anything else is wrapped with
    ``code`` and contextual metadata lifted from the call arguments
    (``provider``, ``user_id``, ``account_id``) or, for adapter methods,
    from the adapter's own ``provider`` attribute.

    Args:
        code: Error code to tag wrapped failures with
        action: Operation description used in the error message

    Returns:
        The decorator
    """
    def decorator(func: F) -> F:
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except PulseError:
                raise
            except Exception as exc:
                arguments = _call_arguments(signature, args, kwargs)
                provider = arguments.get("provider") or getattr(arguments.get("self"), "provider", None)
                raise PulseError.from_exception(
                    exc,
                    code,
                    f"Failed to {action}",
                    provider=provider if isinstance(provider, str) else None,
                    user_id=arguments.get("user_id"),
                    account_id=arguments.get("account_id"),
                    method=func.__name__,
                ) from exc

        return wrapper  # type: ignore[return-value]

    return decorator
