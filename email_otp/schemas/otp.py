from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


@dataclass(frozen=True)
class OtpRecord:
    email: str
    otp: str
    created_at: datetime


class OtpRequest(BaseModel):
    email: str = Field(min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def strip_email(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Email must not be empty")
        return cleaned


class OtpResponse(BaseModel):
    message: str
    expires_in_seconds: int
    otp: Optional[str] = None


class OtpVerifyRequest(OtpRequest):
    otp: str | int


class OtpVerifyResponse(BaseModel):
    message: str
    verified: bool


class MessageResponse(BaseModel):
    message: str
