# src/sqlfault/core/logging/middleware.py
"""
Request ID middleware for Starlette / FastAPI.

Uses the incoming ``X-Request-ID`` header when it looks sane, otherwise a new
UUID4. The id is stored in the request-id contextvar for the duration of the
request, so:

  - RequestIdFilter stamps it on every log record emitted while handling it;
  - QueryContext.snapshot() includes it, so a query that fails inside the
    request carries the id in its context annotation.

The same id is echoed back in the response header.

    app.add_middleware(RequestIDMiddleware)
"""

import re
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from .filters import set_request_id, reset_request_id

REQUEST_ID_HEADER = "X-Request-ID"

# Incoming ids end up in logs and error annotations; keep them short and plain.
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        incoming = request.headers.get(REQUEST_ID_HEADER)
        rid = incoming if incoming and _VALID_REQUEST_ID.match(incoming) else str(uuid.uuid4())

        token = set_request_id(rid)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            reset_request_id(token)


__all__ = ["REQUEST_ID_HEADER", "RequestIDMiddleware"]
