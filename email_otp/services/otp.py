from datetime import datetime, timedelta, timezone
import logging
import secrets
from typing import Callable, Optional, Union

from email_otp.config import settings
from email_otp.errors import InvalidConfiguration, InvalidOtp
from email_otp.schemas.otp import OtpRecord
from email_otp.services.record_store import RecordStore, SqlOtpRecordStore

LOGGER = logging.getLogger(__name__)

MIN_OTP_SIZE = 1
MAX_OTP_SIZE = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_int(name: str, value, minimum: int, maximum: Optional[int] = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfiguration(f"{name} must be an integer, got {value!r}")
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f"[{minimum}, {maximum}]" if maximum is not None else f">= {minimum}"
        raise InvalidConfiguration(f"{name} must be {bounds}, got {value}")
    return value


def otp_bounds(size: int) -> tuple[int, int]:
    """Inclusive range of codes for ``size`` digits.

    A single-digit code may be 0; longer codes never start with 0.
    """
    if size == 1:
        return 0, 9
    return 10 ** (size - 1), 10**size - 1


class OtpService:
    """Issues, verifies and expires email-bound one-time passcodes.

    The service keeps no state of its own; every decision is made against
    ``store``. ``clock`` must return an aware UTC datetime.
    """

    def __init__(
        self,
        store: RecordStore,
        otp_size: int,
        validity_period_minutes: int,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._otp_size = _require_int("otp_size", otp_size, MIN_OTP_SIZE, MAX_OTP_SIZE)
        minutes = _require_int("validity_period_minutes", validity_period_minutes, 1)
        self._validity_period = timedelta(minutes=minutes)
        self._store = store
        self._clock = clock or _utcnow

    @property
    def otp_size(self) -> int:
        return self._otp_size

    @property
    def validity_period(self) -> timedelta:
        return self._validity_period

    def generate(self, email: str) -> str:
        now = self._clock()
        existing = self._store.find_live(email, now - self._validity_period)
        if existing is not None:
            LOGGER.info("Live OTP already exists for %s, re-issuing it", email)
            return existing.otp

        code = self._generate_code()
        self._store.insert(OtpRecord(email=email, otp=code, created_at=now))
        LOGGER.info("Generated OTP for %s", email)
        return code

    def verify(self, email: str, candidate: Union[str, int]) -> bool:
        clean_code = str(candidate).strip()
        if len(clean_code) != self._otp_size or not (
            clean_code.isascii() and clean_code.isdigit()
        ):
            LOGGER.info("Rejected malformed OTP for %s", email)
            raise InvalidOtp("Invalid OTP")

        now = self._clock()
        consumed = self._store.find_and_delete_matching(
            email, clean_code, now - self._validity_period
        )
        if consumed is None:
            LOGGER.info("Rejected OTP for %s", email)
            raise InvalidOtp("Invalid OTP")

        LOGGER.info("Verified OTP for %s", email)
        return True

    def clear_expired(self) -> None:
        cutoff = self._clock() - self._validity_period
        removed = self._store.delete_many(cutoff)
        LOGGER.info("Cleared %d expired OTP(s) created before %s", removed, cutoff.isoformat())

    def _generate_code(self) -> str:
        low, high = otp_bounds(self._otp_size)
        value = low + secrets.randbelow(high - low + 1)
        return str(value).zfill(self._otp_size)


def build_otp_service(session_factory=None) -> OtpService:
    return OtpService(
        SqlOtpRecordStore(session_factory),
        otp_size=settings.otp_size,
        validity_period_minutes=settings.otp_validity_period_minutes,
    )


otp_service = build_otp_service()
