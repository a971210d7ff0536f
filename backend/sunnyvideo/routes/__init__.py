"""
Sunny Video Backend: API Routes Package
=========================================

Route Inventory:
    - auth.py:      POST /api/auth/register, /api/auth/login, /api/auth/logout
    - users.py:     GET/PATCH/DELETE /api/me, GET /api/me/stats,
                    GET /api/users/search
    - contacts.py:  GET/POST /api/contacts, DELETE /api/contacts/{id}
    - effects.py:   GET /api/effects
    - messages.py:  POST/GET /api/messages, GET /api/messages/sent,
                    POST /api/messages/{id}/open, GET /api/messages/{id}/video,
                    DELETE /api/messages/{id}
    - health.py:    GET /health

Routes stay thin: they read the request, call one service method, and set
status codes and headers. Rules live in services/.
"""
