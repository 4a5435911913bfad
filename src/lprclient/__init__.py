"""RFC 1179 Line Printer Daemon client."""

__version__ = "0.1.0"

from .client import LPRClient, quick_print
from .connection import StaticIdentity, SystemIdentity, TCPConnection, source_ports
from .errors import (
    ConnectionError,
    ControlFileAlreadySent,
    InvalidValue,
    LPRError,
    NoSuchJob,
    OversizedTransfer,
    ProtocolNack,
    UnexpectedArgument,
    WrongMode,
)
from .job import Job, PrintDirective
from .protocol import Mode, PrintMode, TroffFont
from .responses import QueueState
from .session import COMMAND_MODES, JobKey, Result, Session

__all__ = [
    "LPRClient",
    "quick_print",
    "Session",
    "Result",
    "JobKey",
    "COMMAND_MODES",
    "Mode",
    "Job",
    "PrintDirective",
    "PrintMode",
    "TroffFont",
    "QueueState",
    "TCPConnection",
    "SystemIdentity",
    "StaticIdentity",
    "source_ports",
    "LPRError",
    "ConnectionError",
    "WrongMode",
    "NoSuchJob",
    "ControlFileAlreadySent",
    "OversizedTransfer",
    "UnexpectedArgument",
    "ProtocolNack",
    "InvalidValue",
]
