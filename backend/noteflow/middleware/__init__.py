"""
NoteFlow Backend — Middleware Package
=======================================

What:  Cross-cutting concerns applied around every request.

Middleware Chain (outermost first):
    Request → [Auth Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    - Auth Rate Limit rejects login/signup floods before any database work
    - Request ID sets the correlation id used by every later log line
    - Access Log records method, path, status and duration
"""
