"""
Pytest configuration for LPD client tests.

Provides an in-memory transport that records what the client writes and
replays scripted server replies.
"""

import pytest

from lprclient import LPRClient, Session, StaticIdentity
from lprclient.errors import ConnectionError


class FakeTransport:
    """Scripted stand-in for TCPConnection.

    Acknowledgement bytes are taken from `replies`; once those run out
    every acknowledgement is a success. `lines` are returned by recv_line()
    followed by None (server closed).
    """

    def __init__(self, replies: bytes = b"", lines=()):
        self.replies = bytearray(replies)
        self.lines = list(lines)
        self.sent: list[bytes] = []
        self.opened = None
        self.open_count = 0
        self.closed = False
        self.fail_open = False
        self.fail_send_after = None

    def open(self, host, port, ports):
        if self.fail_open:
            raise ConnectionError(f"Failed to connect to {host}:{port}: refused")
        self.opened = (host, port, list(ports))
        self.open_count += 1
        self.closed = False

    def close(self):
        self.closed = True

    def send(self, data: bytes):
        if self.fail_send_after is not None and len(self.sent) >= self.fail_send_after:
            raise ConnectionError("Write failed: broken pipe")
        self.sent.append(bytes(data))

    def recv_byte(self) -> bytes:
        if not self.replies:
            return b"\x00"
        byte = bytes(self.replies[:1])
        del self.replies[:1]
        return byte

    def recv_line(self):
        if not self.lines:
            return None
        return self.lines.pop(0)

    @property
    def data(self) -> bytes:
        """Everything written so far, concatenated."""
        return b"".join(self.sent)

    @property
    def is_connected(self) -> bool:
        return self.opened is not None and not self.closed


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def identity():
    return StaticIdentity(hostname="client", username="alice")


@pytest.fixture
def session(transport, identity):
    """A disconnected session wired to the fake transport."""
    return Session(lambda: transport, identity=identity, job_id_seed=41)


@pytest.fixture
def job_session(session):
    """A session already in JOB mode on queue "lp"."""
    assert session.connect("printserver")
    assert session.send_jobs("lp")
    session.transport.sent.clear()
    return session


@pytest.fixture
def client(transport, identity):
    """A client that returns False/None on failure."""
    return LPRClient(
        "printserver",
        transport_factory=lambda: transport,
        identity=identity,
        job_id_seed=41,
    )
