# Services package init
"""
SnipShare Backend: Services Layer
===================================

What:  Business logic between the routes (HTTP) and the database.
How:   Services take their collaborators in the constructor. Database-backed
       services receive the request's AsyncSession; nothing here imports a
       module-level engine or reads a Request object.

Service Inventory:
    - AccountService:   registration, authentication, user lookup
    - SessionStore:     server-held sessions (user binding, flash notices)
    - IdentityService:  login / current user / logout over a session id
    - SnippetService:   snippet CRUD, search and listing
    - QuoteService:     resilient quote API client for the home page

Both the HTML page routes and the JSON API routes call the same services,
so the two adapters cannot drift apart on business rules.
"""
