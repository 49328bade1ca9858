from contextvars import ContextVar
from typing import Optional

request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
client_ip_context: ContextVar[Optional[str]] = ContextVar("client_ip", default=None)


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return request_id_context.get()


def set_request_id(request_id: str) -> None:
    """Set the request ID in context."""
    request_id_context.set(request_id)


def get_client_ip() -> Optional[str]:
    """Client address of the current request, used for activity logs."""
    return client_ip_context.get()


def set_client_ip(client_ip: Optional[str]) -> None:
    client_ip_context.set(client_ip)
