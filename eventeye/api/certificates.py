"""
Certificates Router - Batch issuance and per-event certificate listings

Provides:
- GET /certificates/{event_id}: Certificates of an event, newest first
- POST /generate-certificates: Issue certificates for a JSON participant list
- POST /generate-certificates/csv: Issue certificates for an uploaded CSV
- GET /participants/sample-csv: Sample participant file
"""
from typing import Any, Dict
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from eventeye.dependencies import get_current_user, get_event_service, get_issuance_service
from eventeye.schemas.schemas import (
    CertificateListResponse,
    GenerateCertificatesRequest,
    GenerateCertificatesResponse,
    IssuanceResult,
)
from eventeye.services.event_service import EventService
from eventeye.services.issuance_service import IssuanceService, summarize
from eventeye.services.participant_service import decode_upload, parse_participants_csv, sample_csv

router = APIRouter()


def _to_response(result: IssuanceResult, requested: int) -> GenerateCertificatesResponse:
    return GenerateCertificatesResponse(
        success=not result.failures,
        generated=result.issued_count,
        message=summarize(result, requested),
        certificates=result.certificates,
        failures=result.failures
    )


@router.get("/certificates/{event_id}", response_model=CertificateListResponse)
def list_certificates(
    event_id: str,
    event_service: EventService = Depends(get_event_service),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Certificates issued for an event, newest first."""
    return CertificateListResponse(certificates=event_service.list_certificates(event_id))


@router.post("/generate-certificates", response_model=GenerateCertificatesResponse)
def generate_certificates(
    request: GenerateCertificatesRequest,
    issuance_service: IssuanceService = Depends(get_issuance_service),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Issue one certificate per participant.

    Rules:
    - Event must exist (404 otherwise, nothing is written)
    - Participants without a name or email are reported, the rest are issued
    - Per-participant outcomes are returned; success is false if any failed
    """
    result = issuance_service.issue_certificates(request.event_id, request.participants)
    return _to_response(result, len(request.participants))


@router.post("/generate-certificates/csv", response_model=GenerateCertificatesResponse)
async def generate_certificates_from_csv(
    event_id: str = Form(..., alias="eventId"),
    file: UploadFile = File(...),
    issuance_service: IssuanceService = Depends(get_issuance_service),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Issue certificates for a participant CSV (Name,Email per line)."""
    parsed = parse_participants_csv(decode_upload(await file.read()))

    result = await run_in_threadpool(issuance_service.issue_certificates, event_id, parsed.participants)
    response = _to_response(result, len(parsed.participants))
    if parsed.skipped:
        response.message += f" ({parsed.skipped} CSV lines skipped)"
    return response


@router.get("/participants/sample-csv")
async def download_sample_csv():
    """Sample participant list."""
    return Response(
        content=sample_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=sample_participants.csv"}
    )
