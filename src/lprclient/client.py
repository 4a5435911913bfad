"""
High-Level LPD Client Interface.

Provides the object applications hold to submit jobs to a line printer
daemon. Every method returns a plain value on success and None/False on
failure, keeping the failure in `client.error`; construct the client
with raise_errors=True to get exceptions instead.

Typical use:

    client = LPRClient("printserver")
    client.connect()
    client.send_jobs("lp")
    key = client.new_job()
    client.job_mode_text(key)
    client.send_control_file(key)
    client.send_data(key, b"Hello World", 11)
    client.disconnect()
"""

import functools
import sys
from typing import Iterable, Optional, Union

from .connection import TCPConnection
from .errors import ConnectionError, LPRError
from .job import Job
from .protocol import DEFAULT_PORT, Mode, PrintMode, TroffFont
from .responses import QueueState
from .session import JobKey, Result, Session


class LPRClient:
    """Client for one line printer daemon."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = DEFAULT_PORT,
        strict_rfc_ports: bool = False,
        timeout: Optional[float] = None,
        raise_errors: bool = False,
        print_errors: bool = False,
        transport_factory=None,
        identity=None,
        job_id_seed: Optional[int] = None,
    ):
        """
        Initialize the client. No connection is made until connect().

        Args:
            host: Print server host name or address
            port: LPD port (default 515)
            strict_rfc_ports: Connect from a source port in 721-731, as
                RFC 1179 requires (needs root privileges)
            timeout: Socket timeout in seconds (default: block)
            raise_errors: Raise LPRError instead of returning None/False
            print_errors: Print failures to stderr
            transport_factory: Builds the transport (default TCPConnection)
            identity: Supplies local_hostname() and effective_username()
            job_id_seed: Id preceding the first automatic job id
        """
        if transport_factory is None:
            transport_factory = functools.partial(TCPConnection, timeout=timeout)

        self.host = host
        self.port = port
        self.strict_rfc_ports = strict_rfc_ports
        self.raise_errors = raise_errors
        self.print_errors = print_errors
        self.session = Session(transport_factory, identity=identity, job_id_seed=job_id_seed)
        self.error: Optional[LPRError] = None
        self._debug = False

    def set_debug(self, enabled: bool):
        """Enable/disable debug output."""
        self._debug = enabled
        self.session.set_debug(enabled)

    def _log(self, message: str):
        """Print debug message if enabled."""
        if self._debug:
            print(f"[LPR] {message}")

    def _fail(self, error: LPRError):
        self.error = error
        if self.print_errors:
            print(f"[LPR] error: {error}", file=sys.stderr)
        if self.raise_errors:
            raise error

    def _check(self, result: Result) -> bool:
        if not result.ok:
            self._fail(result.error)
            return False
        return True

    def _value(self, result: Result):
        if not result.ok:
            self._fail(result.error)
            return None
        return result.value

    @property
    def mode(self) -> Mode:
        """Current command mode of the connection."""
        return self.session.mode

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to a print server."""
        return self.session.connected

    # ---- Connection ----

    def connect(self, host: Optional[str] = None, port: Optional[int] = None) -> bool:
        """
        Connect to the print server.

        Args:
            host: Overrides the host given at construction
            port: Overrides the port given at construction

        Returns:
            True if the connection is open and in ROOT mode
        """
        host = host or self.host
        if not host:
            self._fail(ConnectionError("No print server host given"))
            return False
        return self._check(self.session.connect(
            host, port or self.port, strict_rfc_ports=self.strict_rfc_ports,
        ))

    def disconnect(self) -> bool:
        """Close the connection; all job keys become invalid."""
        return self._check(self.session.disconnect())

    # ---- Daemon commands ----

    def print_waiting_jobs(self, queue: str) -> bool:
        """Start printing any jobs waiting on queue. Closes the connection."""
        return self._check(self.session.print_waiting_jobs(queue))

    def send_jobs(self, queue: str) -> bool:
        """Begin submitting jobs to queue."""
        return self._check(self.session.send_jobs(queue))

    def get_queue_state(
        self, queue: str, items: Iterable[str] = (), long: bool = False,
    ) -> Optional[QueueState]:
        """
        List the jobs on queue. Closes the connection.

        Args:
            queue: Queue name
            items: Optional user names or job numbers to restrict the listing
            long: Request the long listing format
        """
        return self._value(self.session.get_queue_state(queue, items, long=long))

    def remove_jobs(
        self, queue: str, agent: Optional[str] = None, items: Iterable[str] = (),
    ) -> bool:
        """Remove jobs from queue as agent (default: current user). Closes the connection."""
        return self._check(self.session.remove_jobs(queue, agent, items))

    # ---- Jobs ----

    def new_job(self, job_id: Optional[int] = None, host: Optional[str] = None) -> Optional[JobKey]:
        """Create a job; returns its key."""
        return self._value(self.session.new_job(job_id, host))

    def abort_jobs(self) -> bool:
        """Abort the job session: the server drops every file received so far."""
        return self._check(self.session.abort_jobs())

    def _edit(self, key: JobKey, mutate, *args, **kwargs) -> bool:
        return self._check(self.session.edit_job(key, mutate, *args, **kwargs))

    def _read(self, key: JobKey, read):
        return self._value(self.session.inspect_job(key, read))

    def job_get_job_id(self, key: JobKey) -> Optional[int]:
        return self._read(key, lambda job: job.job_id)

    def job_get_data_filename(self, key: JobKey) -> Optional[str]:
        return self._read(key, lambda job: job.data_filename)

    def job_set_data_filename(self, key: JobKey, filename: str) -> bool:
        return self._edit(key, Job.set_data_filename, filename)

    def job_get_control_filename(self, key: JobKey) -> Optional[str]:
        return self._read(key, lambda job: job.control_filename)

    def job_set_control_filename(self, key: JobKey, filename: str) -> bool:
        return self._edit(key, Job.set_control_filename, filename)

    def job_set_hostname(self, key: JobKey, hostname: str) -> bool:
        """Host name printed on the banner page (H)."""
        return self._edit(key, Job.set_hostname, hostname)

    def job_set_user(self, key: JobKey, user: str) -> bool:
        """User identification (P)."""
        return self._edit(key, Job.set_user, user)

    def job_set_banner_name(self, key: JobKey, name: str) -> bool:
        """Job name printed on the banner page (J)."""
        return self._edit(key, Job.set_banner_name, name)

    def job_set_banner_class(self, key: JobKey, banner_class: str) -> bool:
        """Class printed on the banner page (C)."""
        return self._edit(key, Job.set_banner_class, banner_class)

    def job_enable_banner(self, key: JobKey, user: Optional[str] = None) -> bool:
        """Print a banner page (L) for user, default the job's user."""
        return self._edit(key, Job.enable_banner, user)

    def job_set_mail(self, key: JobKey, user: str) -> bool:
        """Mail user when the job is printed (M)."""
        return self._edit(key, Job.set_mail, user)

    def job_set_source_filename(self, key: JobKey, filename: str) -> bool:
        """Name of the file the data came from (N)."""
        return self._edit(key, Job.set_source_filename, filename)

    def job_set_symlink(self, key: JobKey, device: int, inode: int) -> bool:
        """Device and inode of a symbolically linked data file (S)."""
        return self._edit(key, Job.set_symlink, device, inode)

    def job_unlink(self, key: JobKey) -> bool:
        """Have the server delete the data file after printing (U)."""
        return self._edit(key, Job.set_unlink, True)

    def job_set_troff_font(self, key: JobKey, font: TroffFont, filename: str) -> bool:
        """troff font file for the R, I, B or S position (1-4)."""
        return self._edit(key, Job.set_troff_font, font, filename)

    def job_set_troff_r_font(self, key: JobKey, filename: str) -> bool:
        return self.job_set_troff_font(key, TroffFont.R, filename)

    def job_set_troff_i_font(self, key: JobKey, filename: str) -> bool:
        return self.job_set_troff_font(key, TroffFont.I, filename)

    def job_set_troff_b_font(self, key: JobKey, filename: str) -> bool:
        return self.job_set_troff_font(key, TroffFont.B, filename)

    def job_set_troff_s_font(self, key: JobKey, filename: str) -> bool:
        return self.job_set_troff_font(key, TroffFont.S, filename)

    # ---- Print modes (each replaces the previous one) ----

    def job_mode(self, key: JobKey, mode: PrintMode, **params) -> bool:
        return self._edit(key, Job.set_print_mode, mode, **params)

    def job_mode_text(self, key: JobKey, width: Optional[int] = None, indent: Optional[int] = None) -> bool:
        """Print as formatted text (f), optionally with page width and indent."""
        return self.job_mode(key, PrintMode.TEXT, width=width, indent=indent)

    def job_mode_literal(self, key: JobKey, width: Optional[int] = None) -> bool:
        """Print without filtering, passing control characters through (l)."""
        return self.job_mode(key, PrintMode.LITERAL, width=width)

    def job_mode_pr(self, key: JobKey, title: Optional[str] = None, width: Optional[int] = None) -> bool:
        """Print with pr(1) headings (p)."""
        return self.job_mode(key, PrintMode.PR, title=title, width=width)

    def job_mode_fortran(self, key: JobKey) -> bool:
        return self.job_mode(key, PrintMode.FORTRAN)

    def job_mode_plot(self, key: JobKey) -> bool:
        return self.job_mode(key, PrintMode.PLOT)

    def job_mode_cif(self, key: JobKey) -> bool:
        return self.job_mode(key, PrintMode.CIF)

    def job_mode_ditroff(self, key: JobKey) -> bool:
        return self.job_mode(key, PrintMode.DITROFF)

    def job_mode_troff(self, key: JobKey) -> bool:
        return self.job_mode(key, PrintMode.TROFF)

    def job_mode_dvi(self, key: JobKey) -> bool:
        return self.job_mode(key, PrintMode.DVI)

    def job_mode_postscript(self, key: JobKey) -> bool:
        return self.job_mode(key, PrintMode.POSTSCRIPT)

    def job_mode_raster(self, key: JobKey) -> bool:
        return self.job_mode(key, PrintMode.RASTER)

    # ---- Transfers ----

    def send_control_file(self, key: JobKey) -> bool:
        """Send the job's control file. Its fields cannot change afterwards."""
        return self._check(self.session.send_control_file(key))

    def send_data(
        self,
        key: JobKey,
        chunk: Union[bytes, str],
        declared_total: Optional[int] = None,
    ) -> bool:
        """
        Send data for the job's data file.

        Args:
            key: Job key
            chunk: Bytes (or text, sent as UTF-8) to append to the data file
            declared_total: Full size of the data file, given on the first
                call only. Without it the server reads until disconnect.

        Returns:
            True if the chunk was sent
        """
        return self._check(self.session.send_data(key, chunk, declared_total))


def quick_print(
    host: str,
    data: Union[bytes, str],
    queue: str = "lp",
    mode: PrintMode = PrintMode.TEXT,
    job_name: Optional[str] = None,
    source_filename: Optional[str] = None,
    title: Optional[str] = None,
    banner: bool = False,
    mail: Optional[str] = None,
    port: int = DEFAULT_PORT,
    strict_rfc_ports: bool = False,
    timeout: Optional[float] = None,
    debug: bool = False,
    **client_options,
) -> int:
    """
    Convenience function to submit one document as one job.

    Args:
        host: Print server host
        data: Document contents
        queue: Queue name (default "lp")
        mode: Print directive (default formatted text)
        job_name: Job name for the banner page
        source_filename: Original file name
        title: pr title, used with PrintMode.PR
        banner: Request a banner page
        mail: User to mail when printed

    Returns:
        The job id assigned to the document

    Raises:
        LPRError: If any step fails
    """
    client = LPRClient(
        host, port=port, strict_rfc_ports=strict_rfc_ports, timeout=timeout,
        raise_errors=True, **client_options,
    )
    client.set_debug(debug)

    if isinstance(data, str):
        data = data.encode("utf-8")

    try:
        client.connect()
        client.send_jobs(queue)
        key = client.new_job()
        if mode is PrintMode.PR:
            client.job_mode_pr(key, title=title)
        else:
            client.job_mode(key, mode)
        if job_name is not None:
            client.job_set_banner_name(key, job_name)
        if source_filename is not None:
            client.job_set_source_filename(key, source_filename)
        if banner:
            client.job_enable_banner(key)
        if mail is not None:
            client.job_set_mail(key, mail)
        job_id = client.job_get_job_id(key)
        client.send_control_file(key)
        client.send_data(key, data, len(data))
        client._log(f"Job {job_id:03d} queued on {queue}@{host}")
        return job_id
    finally:
        client.disconnect()
