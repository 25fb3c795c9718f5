"""Guest book demo: one form, protected by ``CsrfMiddleware``."""

from datetime import datetime
from datetime import timezone
from pathlib import Path

import air
from air.responses import JSONResponse
from air.responses import RedirectResponse
from fastapi import status

from formguard.errors import CsrfError
from formguard.logging import setup as setup_logging
from formguard.middleware import CsrfMiddleware
from formguard.middleware import client_request
from formguard.protection import CsrfProtection
from formguard.settings import Settings

BASE_DIR = Path(__file__).resolve().parent
jinja = air.JinjaRenderer(directory=str(BASE_DIR / "templates"))

settings = Settings()
logger = setup_logging(settings.log_level)

csrf = CsrfProtection.from_settings(settings)

# in-memory only; a real app would use a database
guest_book: list[dict] = []


def error_page(request: air.Request, message: str, status_code: int, code: str | None = None):
    response = jinja(request, "error.html", {"message": message, "code": code})
    response.status_code = status_code
    return response


def csrf_failure(request: air.Request, error: CsrfError):
    return error_page(
        request,
        "Invalid CSRF token. Please try again.",
        status.HTTP_403_FORBIDDEN,
        code=error.code,
    )


async def not_found(request: air.Request, exc: Exception):
    return error_page(request, "Page not found", status.HTTP_404_NOT_FOUND)


async def server_error(request: air.Request, exc: Exception):
    logger.error("unhandled error path=%s", request.url.path, exc_info=exc)
    return error_page(request, "Something went wrong!", status.HTTP_500_INTERNAL_SERVER_ERROR)


app = air.Air()
app.add_middleware(CsrfMiddleware, protection=csrf, on_error=csrf_failure)
app.add_exception_handler(status.HTTP_404_NOT_FOUND, not_found)
app.add_exception_handler(Exception, server_error)


async def render_form(request: air.Request, error: str | None = None):
    # the form may already have been read by the endpoint, so reuse it
    csrf_html = csrf.render(await client_request(request, replay_body=False))
    return jinja(request, "index.html", {"csrf_html": csrf_html, "error": error})


@app.get("/")
async def index(request: air.Request):
    return await render_form(request)


@app.post("/")
async def sign(request: air.Request):
    form_data = await request.form()
    name = str(form_data.get("name") or "").strip()
    if not name:
        return await render_form(request, error="Please enter your name")

    guest_book.append({"name": name, "timestamp": datetime.now(timezone.utc).isoformat()})
    logger.info("guest book signed entries=%d", len(guest_book))
    return RedirectResponse(url="/guestbook", status_code=status.HTTP_303_SEE_OTHER)


@app.get("/guestbook")
def guestbook(request: air.Request):
    return jinja(request, "guestbook.html", {"entries": guest_book})


@app.get("/healthz")
def healthz():
    return JSONResponse({"ok": True})


def main():
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=3000)
