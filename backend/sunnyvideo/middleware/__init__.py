"""
Sunny Video Backend: Middleware Package
=========================================

Middleware Chain (request direction):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit: reject over-limit clients before any work
    2. Request ID: correlation ID for log lines and error bodies
    3. Logging:    one access line with status and duration
"""
