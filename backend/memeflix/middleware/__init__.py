"""
Memeflix Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    - Rate limiting rejects abusive clients before any other work.
    - The request ID is set before the access log runs, so every log line
      for one request carries the same ID.
"""
