# Schemas package init
"""
SnipShare Backend: API Schemas
================================

Pydantic models describing the JSON API contract. Kept apart from the ORM
models so the API never exposes internal columns such as password_hash.

    - common.py:   FieldError, ErrorResponse, MessageResponse, HealthResponse
    - user.py:     registration / login / current user
    - snippet.py:  snippet writes, search, responses
"""
