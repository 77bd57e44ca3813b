"""
Realtime app for WebSocket live queries.

This app provides:
- WebSocket consumers for drivers (claimed requests) and dispatch (searching requests)
- Live query publishing after every committed claim transition
- JWT/Cookie authentication middleware for WebSocket connections

Key Components:
    - live_queries.py: result sets and group publishing
    - consumers/: WebSocket consumers (driver, dispatch)
    - middleware.py: JWT/Cookie auth for the ASGI stack
"""
