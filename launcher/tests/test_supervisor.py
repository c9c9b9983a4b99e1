"""
Tests for the server supervisor: launch arguments, PID file handling,
signal forwarding and exit status propagation.

Real short-lived python children stand in for DayZServer.
"""

import os
import signal
import subprocess
import sys
import threading
import time
from pathlib import Path

import pytest

from dayz_manager.errors import ExternalToolFailure
from dayz_manager.supervisor import (
    Action, ChildExited, Launched, ServerSupervisor, SignalReceived, State,
    build_launch_command, exit_status, transition,
)

CHILD = """
import pathlib, signal, sys, time
ready = pathlib.Path(sys.argv[1])
mode = sys.argv[2]
if mode == "exit":
    sys.exit(int(sys.argv[3]))
if mode == "kill":
    import os
    os.kill(os.getpid(), signal.SIGKILL)
if mode == "slow":
    terms = []
    def on_term(*a):
        terms.append(a[0])
        (ready.parent / "terms").write_text(str(len(terms)))
    signal.signal(signal.SIGTERM, on_term)
    ready.write_text("ok")
    deadline = time.time() + 30
    while len(terms) < 2 and time.time() < deadline:
        time.sleep(0.05)
    time.sleep(0.5)
    sys.exit(10 + len(terms))
signal.signal(signal.SIGTERM, lambda *a: sys.exit(7))
signal.signal(signal.SIGINT, lambda *a: sys.exit(9))
signal.signal(signal.SIGHUP, lambda *a: (ready.parent / "hup").write_text("seen"))
ready.write_text("ok")
deadline = time.time() + 30
while time.time() < deadline:
    time.sleep(0.05)
sys.exit(99)
"""


def _wait_for(path: Path, timeout: float = 10.0) -> None:
    deadline = time.time() + timeout
    while not path.exists():
        if time.time() > deadline:
            raise AssertionError(f"{path} never appeared")
        time.sleep(0.02)


@pytest.fixture
def child_factory(tmp_path):
    launched = []

    def factory(*args):
        def popen(cmd, cwd=None):
            launched.append(cmd)
            return subprocess.Popen([sys.executable, "-c", CHILD, str(tmp_path / "ready"), *args], cwd=cwd)
        return popen

    factory.launched = launched
    return factory


def _send_after_ready(tmp_path, *signums):
    def worker():
        _wait_for(tmp_path / "ready")
        for signum in signums:
            if signum == signal.SIGHUP:
                os.kill(os.getpid(), signum)
                _wait_for(tmp_path / "hup")
            else:
                os.kill(os.getpid(), signum)
    t = threading.Thread(target=worker, daemon=True)
    t.start()
    return t


class TestTransition:

    def test_launch(self):
        assert transition(State.NOT_STARTED, Launched(42)) == (State.RUNNING, Action.NONE)

    @pytest.mark.parametrize("signum", [signal.SIGTERM, signal.SIGINT])
    def test_ending_signals_forward_and_terminate(self, signum):
        assert transition(State.RUNNING, SignalReceived(signum)) == (State.TERMINATING, Action.FORWARD)
        assert transition(State.TERMINATING, SignalReceived(signum)) == (State.TERMINATING, Action.FORWARD)

    def test_hangup_forwards_but_keeps_running(self):
        assert transition(State.RUNNING, SignalReceived(signal.SIGHUP)) == (State.RUNNING, Action.FORWARD)

    def test_child_exit(self):
        assert transition(State.RUNNING, ChildExited(0)) == (State.EXITED, Action.EXIT)
        assert transition(State.RUNNING, ChildExited(3)) == (State.CRASHED, Action.EXIT)
        assert transition(State.TERMINATING, ChildExited(3)) == (State.EXITED, Action.EXIT)

    def test_terminal_states_ignore_events(self):
        assert transition(State.EXITED, SignalReceived(signal.SIGTERM)) == (State.EXITED, Action.NONE)


def test_exit_status():
    assert exit_status(0) == 0
    assert exit_status(7) == 7
    assert exit_status(-signal.SIGTERM) == 128 + signal.SIGTERM


class TestLaunchCommand:

    def test_full_command(self, cfg):
        cfg.start_command.wrapper = "taskset -c 0-3"
        assert build_launch_command(cfg) == [
            "taskset", "-c", "0-3",
            "./DayZServer",
            "-config=serverDZ.cfg",
            "-port=2302",
            "-BEpath=battleye",
            "-profiles=profiles",
            "-nologs",
            "-freezecheck",
            "-dologs",
            "-adminlog",
            "-mod=@CF;@VPPAdminTools;",
        ]

    def test_no_mods_no_flags(self, cfg):
        cfg.mods = []
        cfg.start_command.additional_flags = []
        cmd = build_launch_command(cfg, "/srv/dayz/DayZServer")
        assert cmd[0] == "/srv/dayz/DayZServer"
        assert not any(a.startswith("-mod=") for a in cmd)
        assert cmd[-1] == "-freezecheck"


class TestServerSupervisor:

    def test_pid_file_written_on_launch(self, settings, cfg, layout, child_factory):
        sup = ServerSupervisor(settings, cfg, layout, popen=child_factory("exit", "0"))
        proc = sup.launch()
        assert layout.pid_file.read_text(encoding="utf-8").strip() == str(proc.pid)
        assert sup.state is State.RUNNING
        proc.wait()
        sup.remove_pid_file()
        assert not layout.pid_file.exists()

    def test_child_exit_code_is_propagated(self, settings, cfg, layout, child_factory):
        sup = ServerSupervisor(settings, cfg, layout, popen=child_factory("exit", "5"))
        assert sup.run() == 5
        assert sup.state is State.CRASHED
        assert not layout.pid_file.exists()
        assert child_factory.launched[0][0] == "./DayZServer"

    def test_clean_exit(self, settings, cfg, layout, child_factory):
        sup = ServerSupervisor(settings, cfg, layout, popen=child_factory("exit", "0"))
        assert sup.run() == 0
        assert sup.state is State.EXITED

    def test_child_killed_by_signal(self, settings, cfg, layout, child_factory):
        sup = ServerSupervisor(settings, cfg, layout, popen=child_factory("kill"))
        assert sup.run() == 128 + signal.SIGKILL

    def test_sigterm_is_forwarded_and_exit_code_propagated(self, tmp_path, settings, cfg, layout, child_factory):
        sup = ServerSupervisor(settings, cfg, layout, popen=child_factory("wait"))
        _send_after_ready(tmp_path, signal.SIGTERM)
        assert sup.run() == 7
        assert sup.state is State.EXITED
        assert not layout.pid_file.exists()

    def test_sigint_is_forwarded(self, tmp_path, settings, cfg, layout, child_factory):
        sup = ServerSupervisor(settings, cfg, layout, popen=child_factory("wait"))
        _send_after_ready(tmp_path, signal.SIGINT)
        assert sup.run() == 9

    def test_sighup_does_not_end_supervision(self, tmp_path, settings, cfg, layout, child_factory):
        sup = ServerSupervisor(settings, cfg, layout, popen=child_factory("wait"))
        _send_after_ready(tmp_path, signal.SIGHUP, signal.SIGTERM)
        assert sup.run() == 7
        assert (tmp_path / "hup").read_text(encoding="utf-8") == "seen"

    def test_slow_shutdown_is_waited_for(self, tmp_path, settings, cfg, layout, child_factory):
        terms = tmp_path / "terms"

        def worker():
            _wait_for(tmp_path / "ready")
            os.kill(os.getpid(), signal.SIGTERM)
            _wait_for(terms)
            while terms.read_text(encoding="utf-8") != "1":
                time.sleep(0.02)
            os.kill(os.getpid(), signal.SIGTERM)
        threading.Thread(target=worker, daemon=True).start()

        sup = ServerSupervisor(settings, cfg, layout, popen=child_factory("slow"))
        # both SIGTERMs reach the child and it is never killed
        assert sup.run() == 12
        assert sup.state is State.EXITED
        assert not layout.pid_file.exists()

    def test_handlers_restored_after_run(self, settings, cfg, layout, child_factory):
        before = signal.getsignal(signal.SIGTERM)
        ServerSupervisor(settings, cfg, layout, popen=child_factory("exit", "0")).run()
        assert signal.getsignal(signal.SIGTERM) is before

    def test_launch_failure_cleans_up(self, settings, cfg, layout):
        def broken(cmd, cwd=None):
            raise FileNotFoundError(2, "No such file or directory", cmd[0])
        before = signal.getsignal(signal.SIGHUP)
        with pytest.raises(ExternalToolFailure, match="Cannot launch ./DayZServer"):
            ServerSupervisor(settings, cfg, layout, popen=broken).run()
        assert not layout.pid_file.exists()
        assert signal.getsignal(signal.SIGHUP) is before
