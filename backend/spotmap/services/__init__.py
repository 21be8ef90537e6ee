"""
SpotMap Backend: Services Layer
================================

Service Inventory:
    - SpotRepository: the spots collection (reads, create, visits, comments)
    - MediaService: photo validation and inline data URL encoding
    - IdentityService: accounts, password hashing, bearer tokens
    - AuthSession: per-request identity with change notification
    - LocationProvider (abstract) / HttpLocationProvider: one-shot location
    - RequestScope: cancellation and timeout for the calls of one request
    - ViewService: page assembly on top of all of the above

Services take an AsyncSession per call and keep no request state between
calls; the module-level singletons are safe to share.
"""
