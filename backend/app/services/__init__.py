# Services package init
"""
SoulSocial Backend: Services Layer
====================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Services receive the request's database session, apply the rules and
       return response schemas. They never touch Request/Response objects.

Service Inventory:
    - AuthService:    register, login, password hashing, session tokens
    - ProfileService: profile view and partial update
    - PostService:    feed, post CRUD, like toggle
    - CommentService: comment creation
    - FileService:    image validation, storage, lookup and cleanup
    - Broadcaster:    realtime connection registry and event fan-out
"""
