"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - claims: Atomic claim transitions, the only writers of claim fields
    - matching: Closest-driver search, match attempts and claim expiry sweeps
    - request_management: Request and trip lifecycle operations
"""
