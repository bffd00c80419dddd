"""
Top‑level router for version 1 of the API.

This router aggregates domain‑specific routers under a unified
prefix.  When new endpoints are added, update this file to include
their routers.
"""

from fastapi import APIRouter

from .endpoints import exchanges

router = APIRouter()

router.include_router(exchanges.router, prefix="/exchanges", tags=["exchanges"])
