"""
supervisor.py - runs DayZServer as a supervised foreground child
----------------------------------------------------------------
The supervisor writes the child's PID file, forwards SIGTERM/SIGINT/SIGHUP to
the child and exits with the child's exit status. SIGTERM and SIGINT end
supervision once the child has exited; SIGHUP is only forwarded.

Signals and the child's exit are delivered as events on one queue, and the
state machine lives in the pure transition() function.
"""

from __future__ import annotations
import enum
import shlex
import signal
import subprocess
import threading
import queue
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union
from .models import RootConfig
from .settings import Settings
from .fs_layout import Layout
from .errors import ExternalToolFailure
from .logging_setup import get_logger

log = get_logger("dayz.manager.supervisor")

FORWARDED_SIGNALS = (signal.SIGTERM, signal.SIGINT, signal.SIGHUP)
ENDING_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class State(enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    TERMINATING = "terminating"
    EXITED = "exited"
    CRASHED = "crashed"


class Action(enum.Enum):
    NONE = "none"
    FORWARD = "forward"
    EXIT = "exit"


@dataclass(frozen=True)
class Launched:
    pid: int


@dataclass(frozen=True)
class SignalReceived:
    signum: int


@dataclass(frozen=True)
class ChildExited:
    returncode: int


Event = Union[Launched, SignalReceived, ChildExited]


def transition(state: State, event: Event) -> Tuple[State, Action]:
    if state is State.NOT_STARTED:
        if isinstance(event, Launched):
            return State.RUNNING, Action.NONE
        return state, Action.NONE

    if state in (State.RUNNING, State.TERMINATING):
        if isinstance(event, SignalReceived):
            if event.signum in ENDING_SIGNALS:
                return State.TERMINATING, Action.FORWARD
            return state, Action.FORWARD
        if isinstance(event, ChildExited):
            if state is State.RUNNING and event.returncode != 0:
                return State.CRASHED, Action.EXIT
            return State.EXITED, Action.EXIT

    return state, Action.NONE


def exit_status(returncode: int) -> int:
    """Popen reports death-by-signal as -N; shells report it as 128+N."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def build_launch_command(cfg: RootConfig, server_binary: str = "./DayZServer") -> List[str]:
    sc = cfg.start_command
    cmd: List[str] = shlex.split(sc.wrapper) if sc.wrapper.strip() else []
    cmd.append(server_binary)
    cmd += [
        "-config=serverDZ.cfg",
        f"-port={sc.port}",
        "-BEpath=battleye",
        "-profiles=profiles",
        "-nologs",
        "-freezecheck",
    ]
    cmd += [f"-{flag}" for flag in sc.additional_flags]

    mods = "".join(f"{m.name};" for m in cfg.mods)
    if mods:
        cmd.append(f"-mod={mods}")
    return cmd


class ServerSupervisor:
    def __init__(self, settings: Settings, cfg: RootConfig, layout: Layout,
                 popen: Callable[..., subprocess.Popen] = subprocess.Popen):
        self.settings = settings
        self.cfg = cfg
        self.layout = layout
        self._popen = popen
        self.state = State.NOT_STARTED
        self.proc: Optional[subprocess.Popen] = None
        self._events: "queue.SimpleQueue[Event]" = queue.SimpleQueue()

    # ---------------------------------------------------------------------- #
    def _dispatch(self, event: Event) -> Action:
        prev = self.state
        self.state, action = transition(self.state, event)
        if prev is not self.state:
            log.debug("Supervisor %s -> %s on %s", prev.value, self.state.value, event)
        return action

    def _on_signal(self, signum, _frame) -> None:
        # SimpleQueue.put is safe to call from a signal handler
        self._events.put(SignalReceived(signum))

    def _watch_child(self, proc: subprocess.Popen) -> None:
        self._events.put(ChildExited(proc.wait()))

    def _forward(self, signum: int) -> None:
        name = signal.Signals(signum).name
        log.info("dayzmanager caught %s, forwarding to server (%s)", name, self.proc.pid)
        self.proc.send_signal(signum)

    def launch(self) -> subprocess.Popen:
        cmd = build_launch_command(self.cfg, self.settings.server_binary)
        log.info("Starting server")
        log.debug("Full launch command: %s", " ".join(cmd))
        try:
            self.proc = self._popen(cmd, cwd=str(self.layout.install_root))
        except OSError as e:
            raise ExternalToolFailure(
                "server", f"Cannot launch {cmd[0]} in {self.layout.install_root}: {e}"
            ) from e

        log.info("Server started with PID %s, saving PID file", self.proc.pid)
        self.layout.pid_file.write_text(f"{self.proc.pid}\n", encoding="utf-8")
        self._dispatch(Launched(self.proc.pid))
        return self.proc

    def remove_pid_file(self) -> None:
        log.info("Removing PID file")
        self.layout.pid_file.unlink(missing_ok=True)

    def run(self) -> int:
        """Launch the server and block until it exits. Must run on the main thread."""
        previous: Dict[int, object] = {}
        try:
            # handlers go in first; signals that arrive during launch wait in the queue
            for sig in FORWARDED_SIGNALS:
                previous[sig] = signal.signal(sig, self._on_signal)
            proc = self.launch()

            threading.Thread(target=self._watch_child, args=(proc,), name="server-wait", daemon=True).start()

            while True:
                event = self._events.get()
                action = self._dispatch(event)
                if action is Action.FORWARD:
                    self._forward(event.signum)
                elif action is Action.EXIT:
                    code = exit_status(event.returncode)
                    log.info("Server exited with code %s", code)
                    return code
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
            self.remove_pid_file()
