# Middleware package init
"""
SnipShare Backend: Middleware Package
=======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [Session] → [GZip] → [CORS] → Route

    1. Rate Limit first: reject abusive clients before any other work
    2. Request ID: correlation id for every log line of the request
    3. Logging: one access line per request, with the request id
    4. Session: resolves the session cookie to request.state.session_id
       and writes the cookie back when the handler changed the session
    5. GZip: compresses bodies over 500 bytes
    6. CORS: FastAPI's CORSMiddleware (credentialed /api calls)

    Responses travel the same chain in reverse.
"""
