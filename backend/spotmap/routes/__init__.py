"""
SpotMap Backend: API Routes Package
====================================

Route Inventory:
    - views.py:     /api/views/*     one endpoint per page, plus page writes
    - spots.py:     /api/spots/*     spot repository (list, page, get, create,
                                     visit, comment)
    - auth.py:      /api/auth/*      sign-up, sign-in, sign-out, me
    - location.py:  /api/location/*  current location, directions link
    - health.py:    /health          service health check

Routes stay thin: they parse the request, call one service method and
return its result. Errors are formatted by the handlers in main.py.
"""
