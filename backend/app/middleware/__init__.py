# Middleware package init
"""
Shelfmark Backend: Middleware Package
=======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    - Request ID first, so the access log line and every log call made
      while handling the request carry the same correlation id
    - Logging measures the full downstream duration and final status
"""
