"""
SnipShare Backend: JSON API Route Handlers
============================================

What:  The /api adapter over AccountService, IdentityService and
       SnippetService.
How:   Routes stay thin: parse the body, call a service, shape the response.
       Failures are raised as SnipShareError subclasses and turned into
       JSON by the handlers registered in main.py.

Status codes:
    201  register, submit-snippet
    200  everything else that succeeds
    400  ValidationError / ConflictError / malformed body
    401  bad credentials (login), nobody logged in (/me)
    404  unknown snippet id
    500  StoreError or anything unexpected (generic message)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status

from snipshare.config import Settings
from snipshare.schemas.common import ErrorResponse, MessageResponse
from snipshare.schemas.snippet import (
    SearchRequest,
    SnippetCreatedResponse,
    SnippetEnvelope,
    SnippetListResponse,
    SnippetWrite,
)
from snipshare.schemas.user import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from snipshare.services.account_service import AccountService
from snipshare.services.identity_service import IdentityService
from snipshare.services.session_store import SessionStore
from snipshare.services.snippet_service import SnippetService
from snipshare.validation import raise_for_errors, validate_login, validate_registration
from snipshare.routes.dependencies import (
    current_session_id,
    ensure_session,
    get_account_service,
    get_identity_service,
    get_session_store,
    get_settings,
    get_snippet_service,
)

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api", tags=["API"])

_VALIDATION = {400: {"description": "Invalid input", "model": ErrorResponse}}
_NOT_FOUND = {404: {"description": "Snippet not found", "model": ErrorResponse}}


# ══════════════════════════════════════════════════════════════════════════
# Accounts & Sessions
# ══════════════════════════════════════════════════════════════════════════

@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_VALIDATION,
    summary="Register a new account",
)
async def register(
    body: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    raise_for_errors(
        validate_registration(
            body.username,
            body.password,
            body.confirm_password,
            min_length=settings.password_min_length,
        ),
        message="Registration details are invalid",
    )
    await accounts.register(body.username, body.password, body.confirm_password)
    return MessageResponse(message="Registration successful! Please log in.")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        **_VALIDATION,
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Log in and start a session",
    description=(
        "Checks the credentials and binds the user to a server-held session. "
        "The session id is returned in an HTTP-only cookie."
    ),
)
async def login(
    body: LoginRequest,
    request: Request,
    accounts: AccountService = Depends(get_account_service),
    identity: IdentityService = Depends(get_identity_service),
) -> LoginResponse:
    raise_for_errors(validate_login(body.username, body.password), message="Login details are invalid")

    # AuthError propagates; its handler answers with a generic 401.
    user = await accounts.authenticate(body.username, body.password)

    request.state.session_id = identity.login(ensure_session(request), user)
    return LoginResponse(user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse, summary="End the session")
async def logout(
    request: Request,
    identity: IdentityService = Depends(get_identity_service),
    store: SessionStore = Depends(get_session_store),
) -> MessageResponse:
    """Idempotent: succeeds whether or not anyone was logged in."""
    session_id = current_session_id(request)
    identity.logout(session_id)
    store.destroy(session_id)
    request.state.session_id = None
    return MessageResponse(message="You have been logged out.")


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "Not logged in", "model": ErrorResponse}},
    summary="The logged-in user",
)
async def me(
    request: Request,
    identity: IdentityService = Depends(get_identity_service),
) -> UserResponse:
    user = await identity.current_user(current_session_id(request))
    return UserResponse.model_validate(user)


# ══════════════════════════════════════════════════════════════════════════
# Snippets
# ══════════════════════════════════════════════════════════════════════════

@router.post(
    "/search-results",
    response_model=SnippetListResponse,
    responses=_VALIDATION,
    summary="Search snippets by title",
    description="Case-insensitive substring match on the title. Zero matches is a 200.",
)
async def search(
    body: SearchRequest,
    snippets: SnippetService = Depends(get_snippet_service),
) -> SnippetListResponse:
    return SnippetListResponse(snippets=await snippets.search(body.query))


@router.get(
    "/snippets",
    response_model=SnippetListResponse,
    summary="All snippets, newest first",
)
async def list_snippets(
    snippets: SnippetService = Depends(get_snippet_service),
) -> SnippetListResponse:
    return SnippetListResponse(snippets=await snippets.list_snippets())


@router.post(
    "/submit-snippet",
    response_model=SnippetCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_VALIDATION,
    summary="Create a snippet",
    description="Owned by the logged-in user when there is one, anonymous otherwise.",
)
async def submit_snippet(
    body: SnippetWrite,
    request: Request,
    snippets: SnippetService = Depends(get_snippet_service),
    identity: IdentityService = Depends(get_identity_service),
) -> SnippetCreatedResponse:
    owner = await identity.optional_user(current_session_id(request))
    owner_id: Optional[int] = owner.id if owner else None

    snippet_id = await snippets.create(
        title=body.title,
        code=body.code,
        description=body.description,
        language=body.language,
        owner_id=owner_id,
    )
    return SnippetCreatedResponse(snippet_id=snippet_id)


@router.get(
    "/snippet/{snippet_id}",
    response_model=SnippetEnvelope,
    responses=_NOT_FOUND,
    summary="Get a snippet by id",
)
async def get_snippet(
    snippet_id: int,
    snippets: SnippetService = Depends(get_snippet_service),
) -> SnippetEnvelope:
    return SnippetEnvelope(snippet=await snippets.get_by_id(snippet_id))


@router.put(
    "/snippet/{snippet_id}",
    response_model=MessageResponse,
    responses={**_VALIDATION, **_NOT_FOUND},
    summary="Replace a snippet's title, code, description and language",
)
async def update_snippet(
    snippet_id: int,
    body: SnippetWrite,
    snippets: SnippetService = Depends(get_snippet_service),
) -> MessageResponse:
    await snippets.update(
        snippet_id,
        title=body.title,
        code=body.code,
        description=body.description,
        language=body.language,
    )
    return MessageResponse(message="Snippet updated successfully!")


@router.delete(
    "/snippet/{snippet_id}",
    response_model=MessageResponse,
    responses=_NOT_FOUND,
    summary="Delete a snippet",
)
async def delete_snippet(
    snippet_id: int,
    snippets: SnippetService = Depends(get_snippet_service),
) -> MessageResponse:
    await snippets.delete(snippet_id)
    return MessageResponse(message="Snippet deleted successfully!")
