"""
SnipShare Backend: HTML Page Route Handlers
=============================================

What:  The server-rendered site: home, about, register/login/logout, search,
       snippet list + submit form, snippet detail.
How:   Same services as the JSON API. Form posts follow Post/Redirect/Get:
       success answers 303 with a flash notice queued in the session;
       invalid input re-renders the form with field errors and status 400.
       NotFoundError and StoreError propagate to the global handlers, which
       render error.html for non-API paths.

Every template gets:
    current_user   the logged-in User or None
    flashes        [(category, message), ...] popped from the session
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from snipshare.config import Settings
from snipshare.exceptions import (
    AuthError,
    CircuitBreakerOpenError,
    ConflictError,
    QuoteServiceError,
    ValidationError,
)
from snipshare.schemas.common import FieldError
from snipshare.services.account_service import AccountService
from snipshare.services.identity_service import IdentityService
from snipshare.services.quote_service import QuoteService
from snipshare.services.snippet_service import SnippetService
from snipshare.templating import templates
from snipshare.validation import (
    validate_login,
    validate_registration,
    validate_search,
    validate_snippet,
)
from snipshare.routes.dependencies import (
    current_session_id,
    ensure_session,
    flash,
    get_account_service,
    get_identity_service,
    get_quote_service,
    get_settings,
    get_snippet_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Pages"], include_in_schema=False)

GENERIC_LOGIN_FAILURE = "Invalid username or password."


async def render(
    request: Request,
    identity: IdentityService,
    template: str,
    context: Optional[Dict[str, Any]] = None,
    status_code: int = 200,
) -> HTMLResponse:
    session_id = current_session_id(request)
    page_context = {
        "current_user": await identity.optional_user(session_id),
        "flashes": identity.store.pop_flashes(session_id),
    }
    page_context.update(context or {})
    return templates.TemplateResponse(request, template, page_context, status_code=status_code)


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)


# ── Static pages ──────────────────────────────────────────────────────────

@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    identity: IdentityService = Depends(get_identity_service),
    quotes: QuoteService = Depends(get_quote_service),
):
    """Home page with a random programming quote (omitted if the quote API is down)."""
    try:
        quote = await quotes.fetch_random_quote()
    except (QuoteServiceError, CircuitBreakerOpenError) as e:
        logger.info("Rendering home page without a quote: %s", e.message)
        quote = None
    return await render(request, identity, "index.html", {"quote": quote})


@router.get("/about", response_class=HTMLResponse)
async def about(request: Request, identity: IdentityService = Depends(get_identity_service)):
    return await render(request, identity, "about.html")


# ── Registration ──────────────────────────────────────────────────────────

@router.get("/register", response_class=HTMLResponse)
async def register_form(request: Request, identity: IdentityService = Depends(get_identity_service)):
    return await render(request, identity, "register.html", {"errors": [], "username": ""})


@router.post("/register", response_class=HTMLResponse)
async def register(
    request: Request,
    username: Optional[str] = Form(default=None),
    password: Optional[str] = Form(default=None),
    confirm_password: Optional[str] = Form(default=None, alias="confirmPassword"),
    accounts: AccountService = Depends(get_account_service),
    identity: IdentityService = Depends(get_identity_service),
    settings: Settings = Depends(get_settings),
):
    errors = validate_registration(
        username, password, confirm_password, min_length=settings.password_min_length
    )
    if not errors:
        try:
            await accounts.register(username, password, confirm_password)
        except ValidationError as e:
            errors = e.errors
        except ConflictError as e:
            errors = [FieldError(field="username", message=e.message)]

    if errors:
        return await render(
            request,
            identity,
            "register.html",
            {"errors": errors, "username": username or ""},
            status_code=400,
        )

    flash(request, "Registration successful! Please log in.")
    return redirect("/login")


# ── Login / Logout ────────────────────────────────────────────────────────

@router.get("/login", response_class=HTMLResponse)
async def login_form(request: Request, identity: IdentityService = Depends(get_identity_service)):
    return await render(request, identity, "login.html", {"errors": [], "username": ""})


@router.post("/login", response_class=HTMLResponse)
async def login(
    request: Request,
    username: Optional[str] = Form(default=None),
    password: Optional[str] = Form(default=None),
    accounts: AccountService = Depends(get_account_service),
    identity: IdentityService = Depends(get_identity_service),
):
    errors = validate_login(username, password)
    if errors:
        return await render(
            request,
            identity,
            "login.html",
            {"errors": errors, "username": username or ""},
            status_code=400,
        )

    try:
        user = await accounts.authenticate(username, password)
    except AuthError as e:
        logger.info("Page login declined: %s", e.message)
        flash(request, GENERIC_LOGIN_FAILURE, "error")
        return redirect("/login")

    request.state.session_id = identity.login(ensure_session(request), user)
    flash(request, f"Welcome back, {user.username}!")
    return redirect("/")


@router.get("/logout")
async def logout(request: Request, identity: IdentityService = Depends(get_identity_service)):
    identity.logout(current_session_id(request))
    flash(request, "You have been logged out.")
    return redirect("/")


# ── Search ────────────────────────────────────────────────────────────────

@router.get("/search", response_class=HTMLResponse)
async def search_form(request: Request, identity: IdentityService = Depends(get_identity_service)):
    return await render(
        request,
        identity,
        "search.html",
        {"query": "", "snippets": [], "searched": False, "errors": []},
    )


@router.post("/search-results", response_class=HTMLResponse)
async def search_results(
    request: Request,
    query: Optional[str] = Form(default=None),
    snippets: SnippetService = Depends(get_snippet_service),
    identity: IdentityService = Depends(get_identity_service),
):
    errors = validate_search(query)
    if errors:
        return await render(
            request,
            identity,
            "search.html",
            {"query": query or "", "snippets": [], "searched": False, "errors": errors},
            status_code=400,
        )

    results = await snippets.search(query)
    return await render(
        request,
        identity,
        "search.html",
        {"query": query, "snippets": results, "searched": True, "errors": []},
    )


# ── Snippets ──────────────────────────────────────────────────────────────

@router.get("/snippets", response_class=HTMLResponse)
async def snippet_list(
    request: Request,
    snippets: SnippetService = Depends(get_snippet_service),
    identity: IdentityService = Depends(get_identity_service),
):
    return await render(
        request,
        identity,
        "snippets.html",
        {"snippets": await snippets.list_snippets(), "errors": [], "form": {}},
    )


@router.post("/submit-snippet", response_class=HTMLResponse)
async def submit_snippet(
    request: Request,
    title: Optional[str] = Form(default=None),
    code: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    language: Optional[str] = Form(default=None),
    snippets: SnippetService = Depends(get_snippet_service),
    identity: IdentityService = Depends(get_identity_service),
):
    errors: List[FieldError] = validate_snippet(title, code, language)
    if errors:
        form = {
            "title": title or "",
            "code": code or "",
            "description": description or "",
            "language": language or "",
        }
        return await render(
            request,
            identity,
            "snippets.html",
            {"snippets": await snippets.list_snippets(), "errors": errors, "form": form},
            status_code=400,
        )

    owner = await identity.optional_user(current_session_id(request))
    snippet_id = await snippets.create(
        title=title,
        code=code,
        description=description,
        language=language,
        owner_id=owner.id if owner else None,
    )
    flash(request, "Snippet created successfully!")
    return redirect(f"/snippet/{snippet_id}")


@router.get("/snippet/{snippet_id}", response_class=HTMLResponse)
async def snippet_detail(
    snippet_id: int,
    request: Request,
    snippets: SnippetService = Depends(get_snippet_service),
    identity: IdentityService = Depends(get_identity_service),
):
    snippet = await snippets.get_by_id(snippet_id)
    return await render(request, identity, "snippet.html", {"snippet": snippet})
