"""wsticker - WebSocket endpoint that pushes periodic tick messages."""

__version__ = "0.1.0"
