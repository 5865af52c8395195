"""
The `server` package exposes the chat core over Socket.IO and HTTP.

Contents
--------
- services
    Builds the database, cache, stores, hub and notification channel from Settings.
- sockets
    Binds the EventHub to a python-socketio AsyncServer (handshake auth, events).
- api
    FastAPI routes for message history and notifications.
- app
    The combined ASGI application served by `dealroom serve`.
"""
