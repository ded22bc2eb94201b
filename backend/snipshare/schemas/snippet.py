"""
SnipShare Backend: Snippet Request/Response Schemas
=====================================================

What:  Pydantic models for the snippet part of the JSON API contract.
How:   Request fields are permissive (optional strings) on purpose: presence
       and emptiness are checked by the explicit validation functions in
       snipshare.validation so failures come back as a 400 with a field-error list,
       the same shape the page adapter renders.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class SnippetWrite(BaseModel):
    """Body of POST /api/submit-snippet and PUT /api/snippet/{id}."""
    title: Optional[str] = Field(default=None, description="Snippet title (required)")
    code: Optional[str] = Field(default=None, description="Source code (required)")
    description: Optional[str] = Field(default=None, description="Free-text description")
    language: Optional[str] = Field(default=None, description="Language label (required)")


class SearchRequest(BaseModel):
    """Body of POST /api/search-results."""
    query: Optional[str] = Field(default=None, description="Case-insensitive title substring")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class SnippetResponse(BaseModel):
    """
    A snippet joined with its owner's username.

    `user_id` and `username` are both null for anonymous submissions and for
    snippets whose owner was removed.
    """
    id: int = Field(description="Snippet identifier")
    user_id: Optional[int] = Field(default=None, description="Owner's user id")
    username: Optional[str] = Field(default=None, description="Owner's username")
    title: str
    code: str
    description: Optional[str] = None
    language: str
    created_at: datetime = Field(description="Creation timestamp (UTC)")

    model_config = {"from_attributes": True}


class SnippetEnvelope(BaseModel):
    """Body of GET /api/snippet/{id}."""
    snippet: SnippetResponse


class SnippetListResponse(BaseModel):
    """Body of GET /api/snippets and POST /api/search-results."""
    snippets: List[SnippetResponse]


class SnippetCreatedResponse(BaseModel):
    """Body of POST /api/submit-snippet (HTTP 201)."""
    message: str = Field(default="Snippet created successfully!")
    snippet_id: int = Field(alias="snippetId", description="Identifier assigned by the store")

    model_config = {"populate_by_name": True}
