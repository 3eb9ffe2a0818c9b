"""
Request ID middleware.

Every response carries an X-Request-ID. A caller-supplied id is kept when it
looks like an id (short, no spaces or control characters) so that it can be
written to the log as is; anything else is replaced by a fresh one.
"""
import re
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

_ACCEPTABLE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def resolve_request_id(incoming: Optional[str]) -> str:
    if incoming and _ACCEPTABLE_ID.match(incoming):
        return incoming
    return uuid.uuid4().hex


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Stores the id on request.state.request_id and echoes it back."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        return response
