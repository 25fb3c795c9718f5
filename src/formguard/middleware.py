import inspect
from typing import Awaitable
from typing import Callable
from typing import Optional
from typing import Union

from fastapi import HTTPException
from fastapi import Request
from fastapi import status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import PlainTextResponse
from starlette.responses import Response

from formguard.errors import CsrfError
from formguard.identity import ClientRequest
from formguard.protection import SAFE_METHODS
from formguard.protection import CsrfProtection

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

ErrorHandler = Callable[[Request, CsrfError], Union[Response, Awaitable[Response]]]


async def client_request(request: Request, replay_body: bool = True) -> ClientRequest:
    """Narrow a Starlette request down to what the CSRF checks need.

    Only unsafe requests with a form body get their body read. Middleware
    keeps ``replay_body`` on so the endpoint can parse the form again; route
    dependencies turn it off and share the form FastAPI already parsed.
    """
    form = None
    if request.method.upper() not in SAFE_METHODS:
        # media types are case-insensitive and may carry parameters
        media_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()
        if media_type in FORM_CONTENT_TYPES:
            if replay_body:
                await request.body()
                async with request.form() as data:
                    form = _text_fields(data)
            else:
                form = _text_fields(await request.form())
    return ClientRequest(
        method=request.method,
        client_host=request.client.host if request.client else None,
        path=request.url.path,
        headers=dict(request.headers),
        form=form,
    )


def _text_fields(data) -> dict[str, str]:
    # uploads are never CSRF fields
    return {k: v for k, v in data.items() if isinstance(v, str)}


class CsrfMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, protection: CsrfProtection, on_error: Optional[ErrorHandler] = None):
        super().__init__(app)
        self.protection = protection
        self.on_error = on_error

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # templates render the hidden inputs through request.state.csrf
        request.state.csrf = self.protection

        outcome = self.protection.validate(await client_request(request))
        if outcome.accepted:
            return await call_next(request)

        error = outcome.error()
        if self.on_error is not None:
            response = self.on_error(request, error)
            if inspect.isawaitable(response):
                response = await response
            return response
        return PlainTextResponse(error.message, status_code=status.HTTP_403_FORBIDDEN)


def require_csrf(protection: CsrfProtection):
    """Build a FastAPI dependency enforcing CSRF on a single route."""

    async def dependency(request: Request) -> None:
        try:
            protection.check(await client_request(request, replay_body=False))
        except CsrfError as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)

    return dependency


async def csrf_exception_handler(request: Request, exc: CsrfError) -> Response:
    return PlainTextResponse(exc.message, status_code=status.HTTP_403_FORBIDDEN)
