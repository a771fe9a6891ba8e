from contextlib import contextmanager
from datetime import datetime, timezone
import logging
import threading
from typing import Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from email_otp.database import SessionLocal, session_scope
from email_otp.errors import StorageError
from email_otp.models.otp import OtpEntry
from email_otp.schemas.otp import OtpRecord

LOGGER = logging.getLogger(__name__)


class RecordStore(Protocol):
    def find_live(self, email: str, not_before: datetime) -> Optional[OtpRecord]:
        ...

    def insert(self, record: OtpRecord) -> None:
        ...

    def find_and_delete_matching(
        self, email: str, otp: str, not_before: datetime
    ) -> Optional[OtpRecord]:
        ...

    def delete_many(self, created_before: datetime) -> int:
        ...


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@contextmanager
def _storage_errors(action: str):
    try:
        yield
    except SQLAlchemyError as exc:
        LOGGER.error("OTP storage failure while trying to %s: %s", action, exc)
        raise StorageError(f"Failed to {action}") from exc


class SqlOtpRecordStore:
    def __init__(self, session_factory=None) -> None:
        self._session_factory = session_factory or SessionLocal

    def find_live(self, email: str, not_before: datetime) -> Optional[OtpRecord]:
        with _storage_errors("look up OTP"):
            with session_scope(self._session_factory) as session:
                entry = session.execute(
                    select(OtpEntry)
                    .where(
                        OtpEntry.email == email,
                        OtpEntry.created_at >= not_before,
                    )
                    .order_by(OtpEntry.created_at.desc())
                    .limit(1)
                ).scalar_one_or_none()
                if entry is None:
                    return None
                return OtpRecord(
                    email=entry.email,
                    otp=entry.otp,
                    created_at=_as_utc(entry.created_at),
                )

    def insert(self, record: OtpRecord) -> None:
        with _storage_errors("store OTP"):
            with session_scope(self._session_factory) as session:
                session.add(
                    OtpEntry(
                        email=record.email,
                        otp=record.otp,
                        created_at=record.created_at,
                    )
                )

    def find_and_delete_matching(
        self, email: str, otp: str, not_before: datetime
    ) -> Optional[OtpRecord]:
        # Single DELETE ... RETURNING; concurrent callers never both get the row.
        stmt = (
            delete(OtpEntry)
            .where(
                OtpEntry.email == email,
                OtpEntry.otp == otp,
                OtpEntry.created_at >= not_before,
            )
            .returning(OtpEntry.email, OtpEntry.otp, OtpEntry.created_at)
            .execution_options(synchronize_session=False)
        )
        with _storage_errors("consume OTP"):
            with session_scope(self._session_factory) as session:
                rows = session.execute(stmt).all()
        if not rows:
            return None
        row = rows[0]
        return OtpRecord(email=row.email, otp=row.otp, created_at=_as_utc(row.created_at))

    def delete_many(self, created_before: datetime) -> int:
        with _storage_errors("clear expired OTPs"):
            with session_scope(self._session_factory) as session:
                result = session.execute(
                    delete(OtpEntry)
                    .where(OtpEntry.created_at < created_before)
                    .execution_options(synchronize_session=False)
                )
                return result.rowcount or 0


class InMemoryOtpRecordStore:
    """Process-local store. Every operation holds one lock for its whole run."""

    def __init__(self) -> None:
        self._records: list[OtpRecord] = []
        self._lock = threading.Lock()

    def find_live(self, email: str, not_before: datetime) -> Optional[OtpRecord]:
        with self._lock:
            live = [
                record
                for record in self._records
                if record.email == email and record.created_at >= not_before
            ]
        if not live:
            return None
        return max(live, key=lambda record: record.created_at)

    def insert(self, record: OtpRecord) -> None:
        with self._lock:
            self._records.append(record)

    def find_and_delete_matching(
        self, email: str, otp: str, not_before: datetime
    ) -> Optional[OtpRecord]:
        with self._lock:
            matches = [
                record
                for record in self._records
                if record.email == email
                and record.otp == otp
                and record.created_at >= not_before
            ]
            if not matches:
                return None
            self._records = [record for record in self._records if record not in matches]
        return matches[0]

    def delete_many(self, created_before: datetime) -> int:
        with self._lock:
            kept = [record for record in self._records if record.created_at >= created_before]
            removed = len(self._records) - len(kept)
            self._records = kept
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
