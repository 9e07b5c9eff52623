"""
HTTP routes.
"""

from fastapi import APIRouter

from pearls.api.routes import admin, mcp, oauth

router = APIRouter()

router.include_router(oauth.router, tags=["OAuth"])
router.include_router(mcp.router, tags=["MCP"])
router.include_router(admin.router, prefix="/api", tags=["Admin"])
