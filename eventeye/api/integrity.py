"""
Integrity Router - Orphaned certificate detection and repair
"""
from typing import Any, Dict
from fastapi import APIRouter, Depends

from eventeye.dependencies import get_current_user, get_integrity_service
from eventeye.schemas.schemas import OrphanListResponse, RepairReport
from eventeye.services.integrity_service import IntegrityService

router = APIRouter()


@router.get("/orphans", response_model=OrphanListResponse)
def list_orphans(
    integrity_service: IntegrityService = Depends(get_integrity_service),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Certificates whose verification entry is missing or owned by another certificate."""
    return OrphanListResponse(orphans=integrity_service.find_orphans())


@router.post("/repair", response_model=RepairReport)
def repair_orphans(
    integrity_service: IntegrityService = Depends(get_integrity_service),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Recreate missing verification entries."""
    return integrity_service.repair()
