# Middleware package init
"""
SoulSocial Backend: Middleware Package
========================================

What:  Cross-cutting concerns applied to every HTTP request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [No-Cache] → [GZip] → [CORS] → Route

    1. Request ID first so every later log line carries the id
    2. Logging measures the full duration and sees the final status
    3. No-Cache fills in Cache-Control where the route did not set one
    4. GZip / CORS are Starlette's own middleware
"""
