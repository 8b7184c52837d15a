"""ASGI middleware: request correlation and response security headers."""
