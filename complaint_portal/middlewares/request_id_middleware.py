from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request, Response
from typing import Callable
import uuid
from complaint_portal.config.settings import settings
from complaint_portal.utils.context import set_request_id, set_client_ip

REQUEST_ID_HEADER = "X-Request-ID"
FORWARDED_FOR_HEADER = "X-Forwarded-For"


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            request_id = str(uuid.UUID(request.headers.get(REQUEST_ID_HEADER)))
        except (ValueError, TypeError):
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id

        # Set in context variable for global access to logger
        set_request_id(request_id)
        set_client_ip(client_address(request))

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def client_address(request: Request, trusted_proxies=None) -> str:
    """
    Address of the client that made the request.

    X-Forwarded-For is only read when the socket peer is a trusted proxy;
    the right-most hop that is not itself a trusted proxy wins.
    """
    if trusted_proxies is None:
        trusted_proxies = settings.TRUSTED_PROXIES
    peer = request.client.host if request.client else "unknown"
    if peer not in trusted_proxies:
        return peer

    forwarded = request.headers.get(FORWARDED_FOR_HEADER)
    if not forwarded:
        return peer
    for hop in reversed([h.strip() for h in forwarded.split(",") if h.strip()]):
        if hop not in trusted_proxies:
            return hop
    return peer
