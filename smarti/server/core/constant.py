"""
Server Constants.

Static values shared by the FastAPI application and its routers.
"""

PROJECT_NAME = "Smarti"

API_PREFIX = "/api"

SYSTEM_STEP_COOKIE = "systemStep"
SYSTEM_STEP_COOKIE_MAX_AGE = 60 * 60 * 24 * 365
