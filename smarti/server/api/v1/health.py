"""
Health Check Endpoints.

Basic status endpoints used by the load balancer and deployment checks.
"""

from fastapi import APIRouter

from smarti import __version__

router = APIRouter()


@router.get(
    "/health",
    summary="Health Check",
    description="Check the operational status of the API server.",
    response_description="Status object.",
)
async def health_check():
    return {"status": "ok"}


@router.get(
    "/version",
    summary="Get Version",
    description="Retrieve version information for the API server.",
    response_description="Version object.",
)
async def version():
    return {"version": __version__, "api": "v1"}
