"""
TCP Connection Handler for LPD Print Servers.

Handles the byte stream to the remote line printer daemon, the choice of
local source port, and the local host/user identity written into jobs.
"""

import contextlib
import errno
import getpass
import socket
from dataclasses import dataclass
from typing import Optional

from .errors import ConnectionError


# RFC 1179 section 3: source port must be in 721-731 inclusive
RFC_SOURCE_PORT_MIN = 721
RFC_SOURCE_PORT_MAX = 731


def source_ports(strict: bool) -> list[int]:
    """
    Local ports to try binding, in order.

    Args:
        strict: Use the privileged RFC 1179 range (requires root)

    Returns:
        The RFC range, or [0] to let the OS assign a port
    """
    if strict:
        return list(range(RFC_SOURCE_PORT_MIN, RFC_SOURCE_PORT_MAX + 1))
    return [0]


class SystemIdentity:
    """Host and user names of the running process."""

    def local_hostname(self) -> str:
        return socket.gethostname()

    def effective_username(self) -> str:
        return getpass.getuser()


@dataclass
class StaticIdentity:
    """Fixed host and user names, for tests and unattended use."""
    hostname: str
    username: str

    def local_hostname(self) -> str:
        return self.hostname

    def effective_username(self) -> str:
        return self.username


class TCPConnection:
    """Manages the TCP stream to an LPD print server."""

    RECV_SIZE = 4096

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self.sock: Optional[socket.socket] = None
        self._buffer = bytearray()

    def open(self, host: str, port: int, ports: list[int]):
        """
        Connect to host:port from the first local port that can be bound.

        Raises:
            ConnectionError: If no source port works or the server is unreachable
        """
        last_error: Optional[OSError] = None

        for local_port in ports:
            try:
                self.sock = socket.create_connection(
                    (host, port),
                    timeout=self.timeout,
                    source_address=("", local_port),
                )
                self._buffer.clear()
                return
            except OSError as e:
                last_error = e
                # Only a busy or forbidden source port is worth another try
                if e.errno not in (errno.EADDRINUSE, errno.EACCES):
                    break

        raise ConnectionError(
            f"Failed to connect to {host}:{port}: {last_error}"
        ) from last_error

    def close(self):
        """Close the connection. Safe to call when already closed."""
        if self.sock is not None:
            with contextlib.suppress(OSError):
                self.sock.close()
        self.sock = None
        self._buffer.clear()

    def _require_socket(self) -> socket.socket:
        if self.sock is None:
            raise ConnectionError("Not connected to print server")
        return self.sock

    def send(self, data: bytes):
        """Write all of data to the server."""
        sock = self._require_socket()
        try:
            sock.sendall(data)
        except OSError as e:
            raise ConnectionError(f"Write failed: {e}") from e

    def _fill(self) -> bool:
        """Read more bytes into the buffer. Returns False once the peer closed."""
        sock = self._require_socket()
        try:
            chunk = sock.recv(self.RECV_SIZE)
        except OSError as e:
            raise ConnectionError(f"Read failed: {e}") from e
        self._buffer.extend(chunk)
        return bool(chunk)

    def recv_byte(self) -> bytes:
        """Read exactly one byte, e.g. an acknowledgement."""
        while not self._buffer:
            if not self._fill():
                raise ConnectionError("Connection closed by print server")
        byte = bytes(self._buffer[:1])
        del self._buffer[:1]
        return byte

    def recv_line(self) -> Optional[str]:
        """
        Read one line, without its LF terminator.

        Returns:
            The line, a final unterminated line at close, or None once the
            server has closed and nothing is left
        """
        while b"\n" not in self._buffer:
            if not self._fill():
                if not self._buffer:
                    return None
                line = bytes(self._buffer)
                self._buffer.clear()
                return line.decode("utf-8", errors="replace")

        index = self._buffer.index(b"\n")
        line = bytes(self._buffer[:index])
        del self._buffer[:index + 1]
        return line.decode("utf-8", errors="replace")

    @property
    def is_connected(self) -> bool:
        """Check if currently connected."""
        return self.sock is not None
