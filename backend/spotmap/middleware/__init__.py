"""
SpotMap Backend: Middleware Package
====================================

Middleware chain (first to run at the top):
    RateLimit → RequestID → Logging → GZip → CORS → route

Note: the rate limiter runs before the request id is assigned, so its 429
bodies carry an empty request_id.
"""
