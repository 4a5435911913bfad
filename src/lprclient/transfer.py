"""
Control File and Data File Transfers.

Drives the receive-job sub-commands for one session:

    \\x02<size> <cfname>\\n   ack   <control file>\\x00   ack
    \\x03<size> <dfname>\\n   ack   <data ...>\\x00       ack

A data file may be streamed over several send_data() calls. When a size
was declared, the session returns to JOB mode as soon as exactly that many
bytes went out. Without a declared size (sent as 0) the daemon reads until
the connection closes, so the session stays in DATA mode until disconnect.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

from . import protocol
from .protocol import Mode
from .errors import (
    ControlFileAlreadySent,
    InvalidValue,
    OversizedTransfer,
    UnexpectedArgument,
    WrongMode,
)
from .job import Job

if TYPE_CHECKING:
    from .session import JobKey, Session


@dataclass
class TransferState:
    """Bookkeeping for the data file currently open on the server."""
    job_key: "JobKey"
    declared_total: Optional[int] = None
    bytes_sent: int = 0

    @property
    def complete(self) -> bool:
        return self.declared_total is not None and self.bytes_sent == self.declared_total

    def check_room(self, size: int):
        """Refuse a chunk that would carry bytes_sent past declared_total."""
        if self.declared_total is not None and self.bytes_sent + size > self.declared_total:
            raise OversizedTransfer(self.declared_total, self.bytes_sent, size)


class TransferController:
    """Sends control and data files over a session in JOB/DATA mode."""

    def __init__(self, session: "Session"):
        self.session = session
        self.state: Optional[TransferState] = None

    def reset(self):
        """Forget any open data file (the connection is gone)."""
        self.state = None

    def send_control_file(self, job: Job):
        """Transmit the job's control file and latch it against changes."""
        if job.control_file_sent:
            raise ControlFileAlreadySent(job.job_id)

        payload = job.control_file()
        self.session._send(protocol.receive_control_file(len(payload), job.control_filename))
        self.session._expect_ack("receive control file")

        self.session._send(payload + protocol.FILE_TERMINATOR)
        self.session._expect_ack("control file")

        job.control_file_sent = True
        self.session._log(f"Control file {job.control_filename} sent ({len(payload)} bytes)")

    def send_data(
        self,
        key: "JobKey",
        job: Job,
        chunk: Union[bytes, str],
        declared_total: Optional[int] = None,
    ):
        """
        Stream a chunk of the job's data file.

        In JOB mode this opens the data file, declaring declared_total
        bytes if given. In DATA mode it continues the open file and must
        not be given a size.

        Raises:
            UnexpectedArgument: declared_total given while a file is open
            OversizedTransfer: chunk would exceed the declared size
            WrongMode: file open for another job, or this job's data
                file was already sent
        """
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")

        if self.session.mode is Mode.DATA:
            if declared_total is not None:
                raise UnexpectedArgument(
                    "A data file is already open; declared size is only "
                    "accepted when the transfer starts"
                )
            state = self.state
            if state is None or state.job_key != key:
                raise WrongMode(
                    "send_data", Mode.DATA,
                    f"Data file of another job is open (job key {key!r} given)",
                )
            state.check_room(len(chunk))
            self._stream(job, chunk)
            return

        if job.data_file_sent:
            raise WrongMode(
                "send_data", self.session.mode,
                f"Data file {job.data_filename} has already been sent",
            )
        # A count of 0 on the wire means "read until close"
        if declared_total is not None and (
            not isinstance(declared_total, int) or declared_total < 1
        ):
            raise InvalidValue(f"Declared size must be a positive integer, got {declared_total!r}")

        state = TransferState(job_key=key, declared_total=declared_total)
        state.check_room(len(chunk))

        self.session._send(protocol.receive_data_file(declared_total or 0, job.data_filename))
        self.session._expect_ack("receive data file")

        self.state = state
        self.session._enter(Mode.DATA)
        self._stream(job, chunk)

    def _stream(self, job: Job, chunk: bytes):
        if chunk:
            self.session._send(chunk)
            self.state.bytes_sent += len(chunk)

        if not self.state.complete:
            return

        self.session._send(protocol.FILE_TERMINATOR)
        try:
            self.session._expect_ack("data file")
            job.data_file_sent = True
            self.session._log(f"Data file {job.data_filename} sent ({self.state.bytes_sent} bytes)")
        finally:
            # The sized file is closed whether or not the daemon accepted it
            self.state = None
            self.session._enter(Mode.JOB)
