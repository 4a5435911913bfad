"""Tests for the session state machine."""

import threading

import pytest

from lprclient.errors import (
    ConnectionError,
    ControlFileAlreadySent,
    InvalidValue,
    NoSuchJob,
    ProtocolNack,
    WrongMode,
)
from lprclient.job import Job
from lprclient.protocol import Mode
from lprclient.session import COMMAND_MODES, Result, Session

from conftest import FakeTransport


# Operations that take no job key, as called in the mode tests
UNKEYED_CALLS = {
    "connect": lambda s: s.connect("printserver"),
    "print_waiting_jobs": lambda s: s.print_waiting_jobs("lp"),
    "send_jobs": lambda s: s.send_jobs("lp"),
    "get_queue_state": lambda s: s.get_queue_state("lp"),
    "remove_jobs": lambda s: s.remove_jobs("lp"),
    "new_job": lambda s: s.new_job(),
    "abort_jobs": lambda s: s.abort_jobs(),
}


def _session_in(mode: Mode, session: Session) -> Session:
    """Drive a fresh session into mode."""
    if mode is Mode.DISCONNECTED:
        return session
    assert session.connect("printserver")
    if mode is Mode.ROOT:
        return session
    assert session.send_jobs("lp")
    if mode is Mode.DATA:
        key = session.new_job().value
        assert session.send_data(key, b"partial")
    return session


class TestResult:
    """Test the Result value."""

    def test_ok_result_is_truthy(self):
        assert Result(value=3)
        assert Result(value=3).ok

    def test_error_result_is_falsy(self):
        result = Result(error=WrongMode("x", Mode.ROOT))
        assert not result
        assert not result.ok


class TestConnect:
    """Test connecting and disconnecting."""

    def test_starts_disconnected(self, session):
        assert session.mode is Mode.DISCONNECTED
        assert not session.connected

    def test_connect_enters_root(self, session, transport):
        result = session.connect("printserver")
        assert result.ok
        assert session.mode is Mode.ROOT
        assert session.connected
        assert transport.opened == ("printserver", 515, [0])

    def test_strict_ports(self, session, transport):
        """Strict RFC ports offers 721-731 to the transport."""
        session.connect("printserver", 1515, strict_rfc_ports=True)
        assert transport.opened == ("printserver", 1515, list(range(721, 732)))

    def test_connect_failure(self, session, transport):
        transport.fail_open = True
        result = session.connect("printserver")
        assert isinstance(result.error, ConnectionError)
        assert session.mode is Mode.DISCONNECTED

    def test_connect_twice_is_wrong_mode(self, session, transport):
        session.connect("printserver")
        result = session.connect("printserver")
        assert isinstance(result.error, WrongMode)
        assert transport.open_count == 1

    def test_disconnect(self, session, transport):
        session.connect("printserver")
        assert session.disconnect()
        assert session.mode is Mode.DISCONNECTED
        assert transport.closed

    def test_disconnect_when_disconnected_is_noop(self, session):
        assert session.disconnect()
        assert session.mode is Mode.DISCONNECTED


class TestCommandModes:
    """Operations outside their legal modes fail without wire I/O."""

    @pytest.mark.parametrize("mode", list(Mode))
    @pytest.mark.parametrize("name", sorted(UNKEYED_CALLS))
    def test_illegal_operation_sends_nothing(self, session, transport, mode, name):
        if mode in COMMAND_MODES[name]:
            pytest.skip(f"{name} is legal in {mode.name}")
        _session_in(mode, session)
        writes = len(transport.sent)
        opens = transport.open_count

        result = UNKEYED_CALLS[name](session)

        assert isinstance(result.error, WrongMode)
        assert session.mode is mode
        assert len(transport.sent) == writes
        assert transport.open_count == opens

    def test_send_control_file_in_data_mode(self, job_session, transport):
        key = job_session.new_job().value
        other = job_session.new_job().value
        job_session.send_data(key, b"unbounded")
        writes = len(transport.sent)

        result = job_session.send_control_file(other)

        assert isinstance(result.error, WrongMode)
        assert len(transport.sent) == writes

    def test_every_operation_has_modes(self):
        assert set(UNKEYED_CALLS) | {"disconnect", "send_control_file", "send_data"} == set(COMMAND_MODES)


class TestDaemonCommands:
    """Test ROOT mode commands."""

    def test_send_jobs_enters_job_mode(self, session, transport):
        session.connect("printserver")
        assert session.send_jobs("lp")
        assert transport.sent == [b"\x02lp\n"]
        assert session.mode is Mode.JOB

    def test_send_jobs_nack_stays_in_root(self, session, transport):
        transport.replies = bytearray(b"\x01")
        session.connect("printserver")
        result = session.send_jobs("lp")
        assert isinstance(result.error, ProtocolNack)
        assert result.error.code == 1
        assert session.mode is Mode.ROOT
        assert session.connected

    def test_print_waiting_jobs_disconnects(self, session, transport):
        session.connect("printserver")
        assert session.print_waiting_jobs("lp")
        assert transport.sent == [b"\x01lp\n"]
        assert session.mode is Mode.DISCONNECTED
        assert transport.closed

    def test_get_queue_state(self, session, transport):
        transport.lines = ["lp is ready and printing", "no entries"]
        session.connect("printserver")
        result = session.get_queue_state("lp", ["alice"], long=True)
        assert transport.sent == [b"\x04lp alice\n"]
        assert result.value.lines == ["lp is ready and printing", "no entries"]
        assert result.value.long
        assert session.mode is Mode.DISCONNECTED

    def test_remove_jobs_default_agent(self, session, transport):
        session.connect("printserver")
        assert session.remove_jobs("lp", items=["12", "13"])
        assert transport.sent == [b"\x05lp alice 12 13\n"]
        assert session.mode is Mode.DISCONNECTED

    def test_invalid_queue_sends_nothing(self, session, transport):
        session.connect("printserver")
        result = session.send_jobs("bad queue")
        assert isinstance(result.error, InvalidValue)
        assert transport.sent == []
        assert session.mode is Mode.ROOT


class TestJobs:
    """Test job creation and the job registry."""

    def test_new_job_ids_increase(self, job_session):
        keys = [job_session.new_job().value for _ in range(3)]
        ids = [job_session.jobs[k].job_id for k in keys]
        assert ids == [42, 43, 44]

    def test_job_ids_wrap_at_1000(self, transport, identity):
        session = Session(lambda: transport, identity=identity, job_id_seed=998)
        session.connect("printserver")
        session.send_jobs("lp")
        ids = [session.jobs[session.new_job().value].job_id for _ in range(3)]
        assert ids == [999, 0, 1]

    def test_explicit_id_continues_sequence(self, job_session):
        first = job_session.new_job(job_id=500).value
        second = job_session.new_job().value
        assert job_session.jobs[first].job_id == 500
        assert job_session.jobs[second].job_id == 501

    def test_invalid_explicit_id(self, job_session):
        result = job_session.new_job(job_id=1000)
        assert isinstance(result.error, InvalidValue)
        assert job_session.jobs == {}

    def test_job_defaults_from_identity(self, job_session):
        job = job_session.jobs[job_session.new_job().value]
        assert job.origin_host == "client"
        assert job.user == "alice"

    def test_explicit_host(self, job_session):
        job = job_session.jobs[job_session.new_job(host="other").value]
        assert job.data_filename == "dfA042other"

    def test_new_job_sends_nothing(self, job_session, transport):
        job_session.new_job()
        assert transport.sent == []

    def test_edit_unknown_key(self, job_session):
        result = job_session.edit_job(12345, Job.set_mail, "bob")
        assert isinstance(result.error, NoSuchJob)

    def test_edit_after_control_file(self, job_session):
        key = job_session.new_job().value
        assert job_session.edit_job(key, Job.set_mail, "bob")
        assert job_session.send_control_file(key)
        result = job_session.edit_job(key, Job.set_mail, "carol")
        assert isinstance(result.error, ControlFileAlreadySent)

    def test_inspect_job(self, job_session):
        key = job_session.new_job().value
        assert job_session.inspect_job(key, lambda job: job.job_id).value == 42

    def test_abort_jobs(self, job_session, transport):
        key = job_session.new_job().value
        assert job_session.abort_jobs()
        assert transport.sent == [b"\x01\n"]
        assert job_session.mode is Mode.JOB
        assert isinstance(job_session.edit_job(key, Job.set_mail, "x").error, NoSuchJob)


class TestDisconnectDiscardsJobs:
    """Disconnection always invalidates job keys."""

    def test_explicit_disconnect(self, job_session):
        key = job_session.new_job().value
        job_session.disconnect()
        assert job_session.mode is Mode.DISCONNECTED
        assert isinstance(job_session.edit_job(key, Job.set_mail, "x").error, NoSuchJob)
        assert isinstance(job_session.send_control_file(key).error, NoSuchJob)

    def test_transport_failure(self, job_session, transport):
        key = job_session.new_job().value
        transport.fail_send_after = 0

        result = job_session.send_control_file(key)

        assert isinstance(result.error, ConnectionError)
        assert job_session.mode is Mode.DISCONNECTED
        assert transport.closed
        assert job_session.jobs == {}
        assert isinstance(job_session.send_data(key, b"x", 1).error, NoSuchJob)

    def test_empty_ack_read(self, job_session, transport):
        """A transport that yields no ack byte drops the session."""
        key = job_session.new_job().value
        transport.recv_byte = lambda: b""

        result = job_session.send_control_file(key)

        assert isinstance(result.error, ConnectionError)
        assert job_session.mode is Mode.DISCONNECTED
        assert job_session.jobs == {}

    def test_keys_not_reused_after_reconnect(self, job_session):
        old = job_session.new_job().value
        job_session.disconnect()
        job_session.connect("printserver")
        job_session.send_jobs("lp")
        new = job_session.new_job().value
        assert new != old
        assert isinstance(job_session.edit_job(old, Job.set_mail, "x").error, NoSuchJob)


class TestSerialization:
    """Operations on one session do not interleave."""

    def test_concurrent_setters(self, job_session):
        key = job_session.new_job().value
        errors = []

        def worker(n):
            for i in range(50):
                result = job_session.edit_job(key, Job.set_banner_name, f"job-{n}-{i}")
                if not result:
                    errors.append(result.error)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert job_session.jobs[key].job_name.startswith("job-")


class TestDebugOutput:
    """Test debug tracing."""

    def test_debug_prints_mode_changes(self, session, capsys):
        session.set_debug(True)
        session.connect("printserver")
        out = capsys.readouterr().out
        assert "[LPR] Mode DISCONNECTED -> ROOT" in out

    def test_quiet_by_default(self, session, capsys):
        session.connect("printserver")
        assert capsys.readouterr().out == ""


def test_fake_transport_acks_by_default():
    """Sanity check of the test transport."""
    assert FakeTransport().recv_byte() == b"\x00"
