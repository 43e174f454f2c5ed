# Langfuse integration
from typing import Any, Callable, Optional, TypeVar
import structlog

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_tracing_enabled = False


def configure_tracing(enabled: bool) -> None:
    """Turn Langfuse tracing on or off for functions decorated afterwards"""
    global _tracing_enabled
    _tracing_enabled = enabled
    logger.info("Tracing configured", langfuse_enabled=enabled)


def traced(name: str, as_type: Optional[str] = None) -> Callable[[F], F]:
    """Wrap a coroutine in a Langfuse observation when tracing is enabled"""

    def decorator(func: F) -> F:
        if not _tracing_enabled:
            return func

        from langfuse import observe

        if as_type:
            return observe(name=name, as_type=as_type)(func)
        return observe(name=name)(func)

    return decorator


def update_trace(user_id: str, session_id: Optional[str] = None, **metadata: Any) -> None:
    """Attach user and session metadata to the current trace"""

    if not _tracing_enabled:
        return

    from langfuse import get_client

    get_client().update_current_trace(
        user_id=user_id,
        session_id=session_id or f"chat_{user_id}",
        tags=["chat_turn"],
        metadata=metadata
    )
