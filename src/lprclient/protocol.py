"""
RFC 1179 (Line Printer Daemon) Wire Encoding.

Commands are a single command byte followed by space-separated ASCII
operands and a terminating LF. The first operand follows the command
byte directly:

    \\x02lp\\n                     Receive a printer job, queue "lp"
    \\x03123 dfA123host\\n          Receive data file (JOB sub-command)

Control files are a sequence of lines, each a one-character tag
followed by its value:

    Hhost
    Puser
    fdfA123host

Acknowledgements are a single byte, 0x00 meaning success.
"""

from enum import Enum, IntEnum
from typing import Iterable, Optional, Union

from .errors import ConnectionError, InvalidValue


LF = b"\n"
ACK = b"\x00"
FILE_TERMINATOR = b"\x00"

DEFAULT_PORT = 515


class Mode(Enum):
    """Command mode of a connection to the daemon."""
    DISCONNECTED = "disconnected"
    ROOT = "root"
    JOB = "job"
    DATA = "data"


class RootCommand(IntEnum):
    """Daemon commands (RFC 1179 section 5)."""
    PRINT_WAITING_JOBS = 0x01
    RECEIVE_JOB = 0x02
    SHORT_QUEUE_STATE = 0x03
    LONG_QUEUE_STATE = 0x04
    REMOVE_JOBS = 0x05


class JobCommand(IntEnum):
    """Receive job sub-commands (RFC 1179 section 6)."""
    ABORT = 0x01
    RECEIVE_CONTROL_FILE = 0x02
    RECEIVE_DATA_FILE = 0x03


class ControlTag(str, Enum):
    """Control file line tags (RFC 1179 section 7)."""
    CLASS = "C"
    HOST = "H"
    INDENT = "I"
    JOB_NAME = "J"
    BANNER = "L"
    MAIL = "M"
    SOURCE_NAME = "N"
    USER = "P"
    SYMLINK = "S"
    TITLE = "T"
    UNLINK = "U"
    WIDTH = "W"
    FONT_R = "1"
    FONT_I = "2"
    FONT_B = "3"
    FONT_S = "4"


class PrintMode(str, Enum):
    """Print directives; a job carries at most one."""
    CIF = "c"
    DVI = "d"
    TEXT = "f"
    PLOT = "g"
    LITERAL = "l"
    DITROFF = "n"
    POSTSCRIPT = "o"
    PR = "p"
    FORTRAN = "r"
    TROFF = "t"
    RASTER = "v"


class TroffFont(IntEnum):
    """troff font slots, numbered as their control file tags."""
    R = 1
    I = 2
    B = 3
    S = 4


# Maximum value lengths from RFC 1179 section 7
MAX_LENGTHS = {
    ControlTag.CLASS: 31,
    ControlTag.HOST: 31,
    ControlTag.JOB_NAME: 99,
    ControlTag.BANNER: 31,
    ControlTag.SOURCE_NAME: 131,
    ControlTag.USER: 31,
    ControlTag.TITLE: 79,
}


def _operand(value: Union[str, int]) -> str:
    text = str(value)
    if "\n" in text or "\0" in text:
        raise InvalidValue(f"Operand may not contain LF or NUL: {text!r}")
    return text


def encode_command(code: int, *operands: Union[str, int]) -> bytes:
    """Encode a command byte with its operands and LF terminator."""
    line = " ".join(_operand(op) for op in operands)
    return bytes([code]) + line.encode("utf-8") + LF


def _queue_operand(queue: str) -> str:
    if not queue or any(c.isspace() for c in queue):
        raise InvalidValue(f"Invalid queue name: {queue!r}")
    return queue


# ---- Daemon commands ----

def print_waiting_jobs(queue: str) -> bytes:
    return encode_command(RootCommand.PRINT_WAITING_JOBS, _queue_operand(queue))


def receive_job(queue: str) -> bytes:
    return encode_command(RootCommand.RECEIVE_JOB, _queue_operand(queue))


def queue_state(queue: str, items: Iterable[str] = (), long: bool = False) -> bytes:
    """Short (0x03) or long (0x04) queue state request."""
    code = RootCommand.LONG_QUEUE_STATE if long else RootCommand.SHORT_QUEUE_STATE
    return encode_command(code, _queue_operand(queue), *items)


def remove_jobs(queue: str, agent: str, items: Iterable[str] = ()) -> bytes:
    return encode_command(RootCommand.REMOVE_JOBS, _queue_operand(queue), agent, *items)


# ---- Receive job sub-commands ----

def abort_job() -> bytes:
    return encode_command(JobCommand.ABORT)


def receive_control_file(size: int, filename: str) -> bytes:
    return encode_command(JobCommand.RECEIVE_CONTROL_FILE, size, filename)


def receive_data_file(size: int, filename: str) -> bytes:
    """
    Open a data file on the server.

    A size of 0 declares no length; the daemon then reads until the
    connection is closed.
    """
    return encode_command(JobCommand.RECEIVE_DATA_FILE, size, filename)


# ---- Control file ----

def control_line(tag: Union[ControlTag, PrintMode], value: Union[str, int]) -> bytes:
    """Encode one control file line, truncating to the RFC maximum length."""
    text = _operand(value)
    limit = MAX_LENGTHS.get(tag)
    if limit is not None:
        text = text[:limit]
    return f"{tag.value}{text}".encode("utf-8") + LF


def decode_ack(data: bytes) -> Optional[int]:
    """
    Decode an acknowledgement byte.

    Returns:
        None for a positive acknowledgement, otherwise the error code
    """
    if len(data) != 1:
        raise ConnectionError(f"Acknowledgement must be one byte, got {len(data)}")
    return None if data == ACK else data[0]
