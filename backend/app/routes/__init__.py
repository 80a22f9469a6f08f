# Routes package init
"""
Shelfmark Backend: API Routes Package
=======================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - books.py:   /api/books/...   (book upsert, lifecycle and reads)
    - health.py:  GET /health      (service health check)

Routes stay thin: they pick the BookService operation, map None/False to
404, and shape the response. Business rules live in app.services.
"""
