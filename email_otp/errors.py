class OtpError(Exception):
    """Base class for every failure raised by the OTP service."""


class InvalidConfiguration(OtpError, ValueError):
    """Settings the service cannot run with. Raised at construction."""


class InvalidOtp(OtpError, ValueError):
    """The submitted passcode is malformed, wrong, expired or already used."""


class StorageError(OtpError, RuntimeError):
    """The record store could not complete a read or write."""
