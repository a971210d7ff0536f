# Schemas package init
"""
Sunny Video Backend: Pydantic Request/Response Schemas
========================================================

Schemas are the API contract; they are kept apart from the ORM models so the
wire format never exposes internal columns (password_hash, token_version,
video_path).

Modules:
    - auth.py:     register / login / token payloads
    - user.py:     profile, username update, search results, stats
    - contact.py:  contact list and creation
    - message.py:  video message views and send result
    - common.py:   error body, health, effects catalog
"""
