from fastapi import APIRouter, Depends, HTTPException, status

from email_otp.config import settings
from email_otp.errors import InvalidOtp, StorageError
from email_otp.schemas.otp import (
    MessageResponse,
    OtpRequest,
    OtpResponse,
    OtpVerifyRequest,
    OtpVerifyResponse,
)
from email_otp.services.otp import OtpService, otp_service

router = APIRouter(prefix="/otp", tags=["otp"])


def get_otp_service() -> OtpService:
    return otp_service


def _storage_unavailable(exc: StorageError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=str(exc),
    )


@router.post("/request", response_model=OtpResponse, response_model_exclude_none=True)
def request_otp(
    payload: OtpRequest, service: OtpService = Depends(get_otp_service)
) -> OtpResponse:
    try:
        code = service.generate(payload.email)
    except StorageError as exc:
        raise _storage_unavailable(exc) from exc
    return OtpResponse(
        message="OTP issued",
        expires_in_seconds=int(service.validity_period.total_seconds()),
        otp=code if settings.otp_debug else None,
    )


@router.post("/verify", response_model=OtpVerifyResponse)
def verify_otp(
    payload: OtpVerifyRequest, service: OtpService = Depends(get_otp_service)
) -> OtpVerifyResponse:
    try:
        service.verify(payload.email, payload.otp)
    except InvalidOtp as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired OTP",
        ) from exc
    except StorageError as exc:
        raise _storage_unavailable(exc) from exc
    return OtpVerifyResponse(message="OTP verified", verified=True)


@router.post("/clear-expired", response_model=MessageResponse)
def clear_expired(service: OtpService = Depends(get_otp_service)) -> MessageResponse:
    try:
        service.clear_expired()
    except StorageError as exc:
        raise _storage_unavailable(exc) from exc
    return MessageResponse(message="Expired OTPs cleared")
