# task_manager/utils/web.py
# Small request helpers shared by the routers.
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

from fastapi import Request
from fastapi.responses import RedirectResponse


async def form_data(request: Request) -> Dict[str, Any]:
    """
    Dependency: submitted form fields as a plain dict (last value wins for
    repeated keys). Parsing is awaited here so the handlers using it can stay
    plain ``def`` and run in the threadpool.
    """
    form = await request.form()
    return {key: value for key, value in form.items()}


def wants_json(request: Request) -> bool:
    """True for XHR / fetch callers that expect JSON instead of a redirect."""
    if request.headers.get("X-Requested-With") == "XMLHttpRequest":
        return True
    accept = (request.headers.get("accept") or "").lower()
    return "application/json" in accept and "text/html" not in accept


def is_local_url(url: Optional[str]) -> bool:
    """Only same-site paths are valid return targets ("/tasks", not "//evil.com" or "http://...")."""
    if not url or not url.startswith("/"):
        return False
    if url.startswith("//") or url.startswith("/\\"):
        return False
    parts = urlsplit(url)
    return not parts.scheme and not parts.netloc


# ----------------------------
# Flash messages (one-shot notices kept in the session between redirect and next page)
# ----------------------------
def flash(request: Request, message: str, level: str = "success") -> None:
    request.session["flash"] = {"level": level, "message": message}


def pop_flash(request: Request) -> Optional[Dict[str, str]]:
    return request.session.pop("flash", None)


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)
