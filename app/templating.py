# =============================================================================
# app/templating.py - Page Rendering
# =============================================================================
# Thin wrapper around Starlette's Jinja2Templates.
# Every page receives the request-scoped locals set by the pipeline and the
# auth gate (current user, one-time alert) alongside its own view model.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import HTMLResponse

from app.config import settings

templates = Jinja2Templates(directory=settings.templates_path)


def page_locals(request: Request) -> dict[str, Any]:
    """Values every template may read (the equivalent of response locals)."""
    return {
        "user": getattr(request.state, "user", None),
        "alert": getattr(request.state, "alert", None),
    }


def render(
    request: Request,
    template: str,
    status_code: int = 200,
    **context: Any,
) -> HTMLResponse:
    """
    Render a page template.

    Args:
        request: Current request (provides locals and url_for)
        template: Template name, e.g. "overview.html"
        status_code: HTTP status of the response
        **context: View model values for the template

    Returns:
        HTMLResponse with the rendered page
    """
    values = page_locals(request)
    values.update(context)
    return templates.TemplateResponse(
        request,
        template,
        values,
        status_code=status_code,
    )
