"""
Exception handlers for the Smarti server.

This package contains the handlers turning service errors into HTTP
responses and a setup function to register them with the FastAPI application.
"""

from .global_handler import setup_exception_handlers

__all__ = ["setup_exception_handlers"]
