from sqlalchemy import Column, DateTime, Index, Integer, String

from email_otp.database import Base


class OtpEntry(Base):
    __tablename__ = "otp_records"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=False)
    otp = Column(String(10), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_otp_records_email_created_at", "email", "created_at"),
        Index("ix_otp_records_created_at", "created_at"),
    )
