"""
Error taxonomy for the LPD client.

Every failure the client reports is an instance of LPRError. Session
operations return these inside a Result; LPRClient raises them only when
constructed with raise_errors=True.
"""

from typing import Optional


class LPRError(Exception):
    """Base exception for all LPD client errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConnectionError(LPRError):
    """Error opening, writing to, or reading from the print server."""

    pass


class WrongMode(LPRError):
    """Operation is not legal in the session's current command mode."""

    def __init__(self, operation: str, mode, message: Optional[str] = None):
        super().__init__(
            message or f"{operation} is not allowed in {mode.name} mode",
            {"operation": operation, "mode": mode.name},
        )
        self.operation = operation
        self.mode = mode


class NoSuchJob(LPRError):
    """Job key is unknown to this session."""

    def __init__(self, key):
        super().__init__(f"No such job: {key!r}", {"key": key})
        self.key = key


class ControlFileAlreadySent(LPRError):
    """Job fields cannot change once its control file was transmitted."""

    def __init__(self, job_id: int):
        super().__init__(
            f"Control file for job {job_id:03d} has already been sent",
            {"job_id": job_id},
        )
        self.job_id = job_id


class OversizedTransfer(LPRError):
    """Data would exceed the size declared when the data file was opened."""

    def __init__(self, declared: int, sent: int, attempted: int):
        super().__init__(
            f"Sending {attempted} more byte(s) would exceed declared size "
            f"{declared} ({sent} already sent)",
            {"declared": declared, "sent": sent, "attempted": attempted},
        )


class UnexpectedArgument(LPRError):
    """A declared size was given while a data file is already open."""

    pass


class ProtocolNack(LPRError):
    """The print server answered with a non-zero acknowledgement byte."""

    def __init__(self, command: str, code: int):
        super().__init__(
            f"{command} rejected by server (code 0x{code:02X})",
            {"command": command, "code": code},
        )
        self.code = code


class InvalidValue(LPRError):
    """A field or operand cannot be represented on the wire."""

    pass
