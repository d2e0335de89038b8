"""
Smarti HTTP server.

FastAPI application, routers, middleware and exception handlers.
"""
