# Routes package init
"""
SoulSocial Backend: API Routes Package
========================================

What:  HTTP and WebSocket handlers that accept requests and return responses.

Route Inventory:
    - users.py:    POST /api/users/register, POST /api/users/login,
                   GET  /api/users/{username}
    - profile.py:  GET/PUT /api/profile/{username}
    - posts.py:    GET/POST /api/posts, GET/PUT/DELETE /api/posts/{id},
                   POST /api/posts/{id}/like, POST /api/posts/{id}/comment
    - files.py:    GET  /api/files/{path}     (stored images)
    - realtime.py: WS   /ws                   (postsUpdated pushes)
    - health.py:   GET  /health
    - spa.py:      GET  /{anything else}      (frontend, registered last)

Design Principle:
    Routes are THIN: extract data from the request, resolve who is acting,
    call the service, commit, publish the realtime event. Business rules
    live in services.
"""
