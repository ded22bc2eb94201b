# Routes package init
"""
SnipShare Backend: Routes Package
===================================

What:  HTTP adapters over the services layer.

Route Inventory:
    - pages.py:   HTML site (GET /, /about, /register, /login, /logout,
                  /search, /snippets, /snippet/{id}; POST forms)
    - api.py:     JSON API under /api (register, login, logout, me,
                  search-results, snippets, submit-snippet, snippet/{id})
    - health.py:  GET /health
    - dependencies.py: providers for settings, services and the session

Design Principle:
    Routes stay THIN. They read the request, call a service and shape the
    response. Business rules live in the services, so both adapters share
    them.
"""
