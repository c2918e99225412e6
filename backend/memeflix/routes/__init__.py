"""
Memeflix Backend — API Routes Package
======================================

Route Inventory:
    - auth.py:       POST /api/auth/register, POST /api/auth/login, GET /api/auth/me
    - memes.py:      GET  /api/memes, /api/memes/search, /api/memes/random,
                          /api/memes/by-tag/{tag}, /api/memes/{id},
                          /api/memes/{id}/related-tags
                     POST /api/memes/{id}/upvote, /api/memes/{id}/downvote
                     GET  /api/votes
    - tags.py:       GET  /api/tags/popular, /api/tags/all
    - favorites.py:  GET/POST /api/favorites, GET /api/favorites/ids,
                     DELETE /api/favorites/{meme_id}
    - history.py:    GET/POST /api/history, GET /api/history/ids
    - media.py:      GET  /media/{filename}
    - health.py:     GET  /health

Design Principle:
    Routes are thin: extract parameters, call a service, pick the status
    code. Business logic and SQL live in services/.
"""
