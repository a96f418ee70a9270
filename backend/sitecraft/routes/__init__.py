from __future__ import annotations

from fastapi import APIRouter

from . import admin, auth, domains, export, generate, projects, publish

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(projects.router)
api_router.include_router(generate.router)
api_router.include_router(publish.router)
api_router.include_router(domains.router)
api_router.include_router(export.router)
api_router.include_router(admin.router)

__all__ = ["api_router"]
