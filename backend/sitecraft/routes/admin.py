from __future__ import annotations

from fastapi import APIRouter

from sitecraft.dependencies import AdminSecret, PublishCoordinatorDep
from sitecraft.services.publish_service import RepublishReport

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[AdminSecret])


@router.post("/republish-all", response_model=RepublishReport)
async def republish_all(coordinator: PublishCoordinatorDep) -> RepublishReport:
    """Re-publish every published project; per-project failures are reported, not raised."""
    return await coordinator.republish_all()
