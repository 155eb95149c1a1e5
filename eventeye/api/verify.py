"""
Verify Router - Public certificate verification by code
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from eventeye.dependencies import get_verification_service
from eventeye.errors import NotFoundError
from eventeye.schemas.schemas import VerifyResponse
from eventeye.services.verification_service import VerificationService

router = APIRouter()


@router.get(
    "/verify/{verification_code}",
    response_model=VerifyResponse,
    responses={404: {"description": "Unknown verification code ({\"valid\": false})"}}
)
def verify_certificate(
    verification_code: str,
    verification_service: VerificationService = Depends(get_verification_service)
):
    """
    Look up a certificate by the code printed on it (or encoded in its QR code).
    No authentication required.
    """
    try:
        record = verification_service.verify(verification_code)
    except NotFoundError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.message, "valid": False})

    return VerifyResponse(valid=True, certificate=record)
