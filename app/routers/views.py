# =============================================================================
# app/routers/views.py - Page Routes
# =============================================================================
# Server-rendered pages. Every route runs, in order:
#   alerts -> sanitize_path_params -> auth gate -> controller
#
# Auth gates:
# - get_current_user_optional: attaches the user if logged in, never rejects
# - get_current_user: rejects requests without a valid login
#
# Controllers only gather data (through ViewService) and render; error
# responses are left to the terminal error handler.
# =============================================================================

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request

from app.auth import AuthUser, get_current_user, get_current_user_optional
from app.dependencies import ViewServiceDep
from app.middleware.sanitize import sanitize_value
from app.routing import AppRoute
from app.templating import render
from core.services.view_service import alert_message

# =============================================================================
# Router Dependencies
# =============================================================================


def alerts(request: Request, alert: str | None = None) -> None:
    """Attach a one-time status message when the `alert` flag is present."""
    message = alert_message(alert)
    if message:
        request.state.alert = message


def sanitize_path_params(request: Request) -> None:
    """Apply input sanitization to path params once routing has set them."""
    params = request.scope.get("path_params")
    if params:
        request.scope["path_params"] = sanitize_value(params)


router = APIRouter(
    route_class=AppRoute,
    dependencies=[Depends(alerts), Depends(sanitize_path_params)],
)

OptionalUser = Annotated[Optional[AuthUser], Depends(get_current_user_optional)]
RequiredUser = Annotated[AuthUser, Depends(get_current_user)]


# =============================================================================
# Data-Backed Pages
# =============================================================================

@router.get("/")
async def get_overview(request: Request, views: ViewServiceDep, user: OptionalUser):
    """All tours."""
    page = await views.get_overview()
    return render(request, "overview.html", **page.model_dump())


@router.get("/destinations")
async def get_destinations(request: Request, views: ViewServiceDep, user: OptionalUser):
    """Destination categories with featured tours."""
    page = await views.get_destinations()
    return render(request, "destinations.html", **page.model_dump())


@router.get("/stories")
async def get_stories(request: Request, views: ViewServiceDep, user: OptionalUser):
    """Travel stories built from recent reviews."""
    page = await views.get_stories()
    return render(request, "stories.html", **page.model_dump())


@router.get("/tour/{slug}")
async def get_tour(request: Request, slug: str, views: ViewServiceDep, user: OptionalUser):
    """
    One tour with its reviews and guides.

    Unknown slugs raise TourNotFoundError.
    """
    page = await views.get_tour(slug)
    return render(request, "tour.html", **page.model_dump())


@router.get("/my-tours")
async def get_my_tours(request: Request, views: ViewServiceDep, user: RequiredUser):
    """Tours the logged-in user has booked."""
    page = await views.get_my_tours(user.id)
    return render(request, "overview.html", url=request.url.path, **page.model_dump())


@router.post("/submit-user-data")
async def update_user_data(request: Request, views: ViewServiceDep, user: RequiredUser):
    """
    Update name and email from the account form (no API involved).

    The form was decoded by the body-parser stage into request.state.body.
    """
    form = getattr(request.state, "body", None) or {}
    page = await views.update_user_data(user.id, form)
    return render(request, "account.html", **page.model_dump())


# =============================================================================
# Static / Informational Pages
# =============================================================================

@router.get("/me")
async def get_account(request: Request, user: RequiredUser):
    return render(request, "account.html", title="Your account")


@router.get("/book")
async def get_book(request: Request, user: OptionalUser):
    return render(request, "book.html", title="Book your first tour")


@router.get("/login")
async def get_login_form(request: Request, user: OptionalUser):
    return render(request, "login.html", title="Log into your account")


@router.get("/signup")
async def get_signup_form(request: Request, user: OptionalUser):
    return render(request, "signup.html", title="Sign up your account")


@router.get("/about")
async def get_about(request: Request, user: OptionalUser):
    return render(request, "about.html", title="About Us")


@router.get("/download-apps")
async def get_download_apps(request: Request, user: OptionalUser):
    return render(request, "download_apps.html", title="Download Apps")


@router.get("/become-guide")
async def get_become_guide(request: Request, user: OptionalUser):
    return render(request, "become_guide.html", title="Become a Guide")


@router.get("/careers")
async def get_careers(request: Request, user: OptionalUser):
    return render(request, "careers.html", title="Careers")


@router.get("/contact")
async def get_contact(request: Request, user: OptionalUser):
    return render(request, "contact.html", title="Contact Us")
