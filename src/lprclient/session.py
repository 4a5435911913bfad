"""
LPD Session State Machine.

A Session owns one connection to a line printer daemon and tracks the
command mode that connection is in:

    DISCONNECTED --connect--> ROOT --send_jobs--> JOB <--> DATA

print_waiting_jobs, get_queue_state and remove_jobs are one-shot daemon
commands: the connection is closed once they are sent. Any disconnect,
explicit or caused by a transport error, drops every job of the session.

Session operations never raise LPRError. They return a Result carrying
either the value or the error, so callers decide how failures surface.
"""

import functools
import itertools
import os
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable, NewType, Optional

from . import protocol
from .connection import SystemIdentity, TCPConnection, source_ports
from .errors import ConnectionError, LPRError, NoSuchJob, ProtocolNack, WrongMode
from .job import MAX_JOB_ID, Job
from .protocol import DEFAULT_PORT, Mode
from .responses import QueueState
from .transfer import TransferController


JobKey = NewType("JobKey", int)

CONNECTED_MODES = frozenset({Mode.ROOT, Mode.JOB, Mode.DATA})

# Modes each wire-level operation may be called from
COMMAND_MODES = {
    "connect": frozenset({Mode.DISCONNECTED}),
    "disconnect": frozenset(Mode),
    "print_waiting_jobs": frozenset({Mode.ROOT}),
    "send_jobs": frozenset({Mode.ROOT}),
    "get_queue_state": frozenset({Mode.ROOT}),
    "remove_jobs": frozenset({Mode.ROOT}),
    "new_job": frozenset({Mode.JOB}),
    "abort_jobs": frozenset({Mode.JOB}),
    "send_control_file": frozenset({Mode.JOB}),
    "send_data": frozenset({Mode.JOB, Mode.DATA}),
}


@dataclass(frozen=True)
class Result:
    """Outcome of a session operation."""
    value: Any = None
    error: Optional[LPRError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok


def operation(func):
    """Run a session method under the session lock and wrap its outcome in a Result."""

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            try:
                return Result(value=func(self, *args, **kwargs))
            except ConnectionError as e:
                self._log(f"{func.__name__}: {e}")
                self._drop()
                return Result(error=e)
            except LPRError as e:
                self._log(f"{func.__name__}: {e}")
                return Result(error=e)

    return wrapper


class Session:
    """One connection to an LPD server and the jobs created on it."""

    def __init__(
        self,
        transport_factory: Callable[[], Any] = TCPConnection,
        identity=None,
        job_id_seed: Optional[int] = None,
    ):
        """
        Initialize a disconnected session.

        Args:
            transport_factory: Called on each connect to build the transport
            identity: Supplies local_hostname() and effective_username()
            job_id_seed: Id preceding the first automatic job id
                (default: process id)
        """
        self._transport_factory = transport_factory
        self.identity = identity or SystemIdentity()
        self.transport = None
        self.mode = Mode.DISCONNECTED
        self.jobs: dict[JobKey, Job] = {}
        self.transfer = TransferController(self)
        self._keys = itertools.count(1)
        seed = job_id_seed if job_id_seed is not None else os.getpid()
        self._last_job_id = seed % (MAX_JOB_ID + 1)
        self._lock = threading.RLock()
        self._debug = False

    def set_debug(self, enabled: bool):
        """Enable/disable debug output."""
        self._debug = enabled

    def _log(self, message: str):
        """Print debug message if enabled."""
        if self._debug:
            print(f"[LPR] {message}")

    @property
    def connected(self) -> bool:
        return self.mode in CONNECTED_MODES

    # ---- Internals shared with the transfer controller ----

    def _require(self, operation_name: str):
        if self.mode not in COMMAND_MODES[operation_name]:
            raise WrongMode(operation_name, self.mode)

    def _enter(self, mode: Mode):
        if mode is not self.mode:
            self._log(f"Mode {self.mode.name} -> {mode.name}")
        self.mode = mode

    def _drop(self):
        """Close the transport and forget all jobs."""
        if self.transport is not None:
            self.transport.close()
        self.transport = None
        self.jobs.clear()
        self.transfer.reset()
        self._enter(Mode.DISCONNECTED)

    def _send(self, data: bytes):
        self._log(f"TX: {data[:50]!r}{'...' if len(data) > 50 else ''}")
        self.transport.send(data)

    def _expect_ack(self, command: str):
        code = protocol.decode_ack(self.transport.recv_byte())
        if code is not None:
            raise ProtocolNack(command, code)
        self._log(f"RX: ack for {command}")

    def _job(self, key: JobKey) -> Job:
        try:
            return self.jobs[key]
        except (KeyError, TypeError):
            raise NoSuchJob(key) from None

    # ---- Connection ----

    @operation
    def connect(self, host: str, port: int = DEFAULT_PORT, strict_rfc_ports: bool = False):
        """Open a connection to host:port and enter ROOT mode."""
        self._require("connect")
        self._log(f"Connecting to {host}:{port}...")
        transport = self._transport_factory()
        transport.open(host, port, source_ports(strict_rfc_ports))
        self.transport = transport
        self._enter(Mode.ROOT)

    @operation
    def disconnect(self):
        """Close the connection; every job key of this session becomes invalid."""
        self._drop()

    # ---- Daemon commands (ROOT mode) ----

    @operation
    def print_waiting_jobs(self, queue: str):
        """Ask the daemon to start printing queue, then disconnect."""
        self._require("print_waiting_jobs")
        self._send(protocol.print_waiting_jobs(queue))
        self._drop()

    @operation
    def send_jobs(self, queue: str):
        """Start submitting jobs to queue (ROOT -> JOB)."""
        self._require("send_jobs")
        self._send(protocol.receive_job(queue))
        self._expect_ack("receive job")
        self._enter(Mode.JOB)

    @operation
    def get_queue_state(self, queue: str, items: Iterable[str] = (), long: bool = False) -> QueueState:
        """Read the queue listing until the daemon closes the connection."""
        self._require("get_queue_state")
        self._send(protocol.queue_state(queue, items, long=long))

        lines = []
        while True:
            line = self.transport.recv_line()
            if line is None:
                break
            lines.append(line)

        self._drop()
        return QueueState.parse(queue, lines, long=long)

    @operation
    def remove_jobs(self, queue: str, agent: Optional[str] = None, items: Iterable[str] = ()):
        """Remove jobs from queue on behalf of agent, then disconnect."""
        self._require("remove_jobs")
        if agent is None:
            agent = self.identity.effective_username()
        self._send(protocol.remove_jobs(queue, agent, items))
        self._drop()

    # ---- Jobs (JOB mode) ----

    @operation
    def new_job(self, job_id: Optional[int] = None, host: Optional[str] = None) -> JobKey:
        """
        Create a job and return its key.

        Args:
            job_id: 0-999, default is the previous job id plus one
            host: Originating host, default is the local hostname
        """
        self._require("new_job")
        if job_id is None:
            job_id = (self._last_job_id + 1) % (MAX_JOB_ID + 1)
        job = Job(
            job_id=job_id,
            origin_host=host or self.identity.local_hostname(),
            user=self.identity.effective_username(),
        )
        self._last_job_id = job_id

        key = JobKey(next(self._keys))
        self.jobs[key] = job
        self._log(f"New job {job_id:03d} (key {key})")
        return key

    @operation
    def edit_job(self, key: JobKey, mutate: Callable[..., None], *args, **kwargs):
        """Apply a Job setter to the job behind key."""
        mutate(self._job(key), *args, **kwargs)

    @operation
    def inspect_job(self, key: JobKey, read: Callable[[Job], Any]) -> Any:
        return read(self._job(key))

    @operation
    def abort_jobs(self):
        """Tell the daemon to drop everything received for this job session."""
        self._require("abort_jobs")
        self._send(protocol.abort_job())
        self.jobs.clear()

    @operation
    def send_control_file(self, key: JobKey):
        job = self._job(key)
        self._require("send_control_file")
        self.transfer.send_control_file(job)

    @operation
    def send_data(self, key: JobKey, chunk, declared_total: Optional[int] = None):
        """Send (part of) the job's data file; see TransferController.send_data."""
        job = self._job(key)
        self._require("send_data")
        self.transfer.send_data(key, job, chunk, declared_total)
