"""
Process launching abstraction.

A Launcher starts processes on one execution host. Decorators (see
extensions.py) wrap a Launcher to adjust what gets launched without the
caller noticing.

- launch(request): start a process described by a LaunchRequest -> Proc
- launch_channel(cmd, ...): start an agent and talk to it over its stdio
- kill(env_vars): kill processes carrying the given environment markers
- get_channel(): channel to the host, or None for plain local execution
"""
import io
import locale
import logging
import os
import subprocess
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any

import cancellation
from channel import PipeChannel, VirtualChannel

# How often a blocking join wakes up to check the interrupt status
_POLL_INTERVAL = 0.1

_ENCODING = locale.getpreferredencoding(False)

_logger = None


def _get_logger():
    global _logger
    if _logger is None:
        _logger = logging.getLogger("cygpath.launcher")
    return _logger


@dataclass
class Node:
    """Target host descriptor: the machine a launcher runs things on."""
    name: str = "local"
    labels: list[str] = field(default_factory=list)


@dataclass
class LaunchRequest:
    """
    What to launch and how to wire it up.

    cmds: executable followed by its arguments
    pwd: working directory (None = inherit)
    env: variables overriding the launcher's own environment (None = inherit)
    stdin: None, bytes fed to the child, or a file object
    stdout/stderr: None, a file object, or any object with write()
        (e.g. io.BytesIO); the latter is filled when the process is joined
    """
    cmds: list[str] = field(default_factory=list)
    pwd: str | os.PathLike | None = None
    env: dict[str, str] | None = None
    stdin: Any = None
    stdout: Any = None
    stderr: Any = None

    def copy(self) -> "LaunchRequest":
        """Independent copy; stream bindings are shared, not duplicated."""
        return replace(
            self,
            cmds=list(self.cmds),
            env=dict(self.env) if self.env is not None else None,
        )


class Proc(ABC):
    """Handle on a launched process."""

    @abstractmethod
    def join(self, timeout: float | None = None) -> int:
        """Wait for the process to exit and return its exit code."""

    @abstractmethod
    def kill(self) -> None:
        pass

    @abstractmethod
    def is_alive(self) -> bool:
        pass


class Launcher(ABC):
    """Starts processes on one execution host."""

    def __init__(self, channel: VirtualChannel | None = None):
        self.channel = channel

    def get_channel(self) -> VirtualChannel | None:
        return self.channel

    @abstractmethod
    def is_unix(self) -> bool:
        pass

    @abstractmethod
    def launch(self, request: LaunchRequest) -> Proc:
        pass

    @abstractmethod
    def launch_channel(self, cmd: list[str], out, work_dir=None,
                       env_vars: dict[str, str] | None = None) -> VirtualChannel:
        pass

    @abstractmethod
    def kill(self, env_vars: dict[str, str]) -> None:
        pass

    def run(self, cmds: list[str], stdout=None, stderr=None, stdin=None,
            pwd=None, env: dict[str, str] | None = None) -> Proc:
        """Shorthand for launch(LaunchRequest(...))."""
        return self.launch(LaunchRequest(
            list(cmds), pwd=pwd, env=env, stdin=stdin, stdout=stdout, stderr=stderr,
        ))


def _needs_pipe(stream) -> bool:
    """True for sinks the child cannot write to directly (no file descriptor)."""
    if stream is None or isinstance(stream, int):
        return False
    try:
        stream.fileno()
    except (AttributeError, OSError):
        return True
    return False


def _copy(data, sink) -> None:
    if sink is None or not data:
        return
    if isinstance(sink, io.TextIOBase):
        if isinstance(data, bytes):
            data = data.decode(_ENCODING, errors="replace")
    elif isinstance(data, str):
        data = data.encode(_ENCODING, errors="replace")
    sink.write(data)


def _pump(source, sink) -> None:
    try:
        for chunk in source:
            _copy(chunk, sink)
    except (OSError, ValueError):
        pass  # agent went away


class LocalProc(Proc):
    """A child process started with subprocess.Popen."""

    def __init__(self, popen: subprocess.Popen, cmds: list[str], env: dict[str, str],
                 stdout=None, stderr=None, stdin_data: bytes | None = None):
        self.popen = popen
        self.cmds = cmds
        self.env = env
        self._stdout = stdout
        self._stderr = stderr
        self._input = stdin_data
        self._exit_code = None

    @property
    def pid(self) -> int:
        return self.popen.pid

    def join(self, timeout: float | None = None) -> int:
        """
        Wait for exit, copying captured output into the request's sinks.

        Raises InterruptedError (after killing the child) if the calling
        thread is interrupted, and subprocess.TimeoutExpired (also after
        killing it) once `timeout` seconds have passed.
        """
        if self._exit_code is not None:
            return self._exit_code

        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if cancellation.interrupted():
                self.kill()
                raise InterruptedError(f"Interrupted while waiting for {self.cmds[0]}")
            wait = _POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self.kill()
                    raise subprocess.TimeoutExpired(self.cmds, timeout)
                wait = min(wait, remaining)
            try:
                out, err = self.popen.communicate(input=self._input, timeout=wait)
                break
            except subprocess.TimeoutExpired:
                # input is only sent on the first communicate() call
                self._input = None

        _copy(out, self._stdout)
        _copy(err, self._stderr)
        self._exit_code = self.popen.returncode
        return self._exit_code

    def kill(self) -> None:
        if self.popen.poll() is None:
            self.popen.kill()
            self.popen.wait()

    def is_alive(self) -> bool:
        return self.popen.poll() is None


class LocalLauncher(Launcher):
    """
    Launches processes on this machine.

    unix: override the platform classification (None = detect from os.name)
    channel: channel to run tasks on this host, if the caller has one
    """

    def __init__(self, unix: bool | None = None, channel: VirtualChannel | None = None):
        super().__init__(channel)
        self._unix = unix
        self._procs: list[LocalProc] = []
        self._lock = threading.Lock()

    def is_unix(self) -> bool:
        if self._unix is None:
            return os.name != "nt"
        return self._unix

    def _environment(self, overrides: dict[str, str] | None) -> dict[str, str]:
        env = os.environ.copy()
        if overrides:
            env.update(overrides)
        return env

    def _track(self, proc: LocalProc) -> None:
        with self._lock:
            self._procs = [p for p in self._procs if p.is_alive()]
            self._procs.append(proc)

    def launch(self, request: LaunchRequest) -> LocalProc:
        if not request.cmds:
            raise ValueError("launch request has no command")
        env = self._environment(request.env)
        stdout = request.stdout if _needs_pipe(request.stdout) else None
        stderr = request.stderr if _needs_pipe(request.stderr) else None
        data = request.stdin if isinstance(request.stdin, bytes) else None

        popen = subprocess.Popen(
            request.cmds,
            cwd=str(request.pwd) if request.pwd is not None else None,
            env=env,
            stdin=subprocess.PIPE if data is not None else request.stdin,
            stdout=subprocess.PIPE if stdout is not None else request.stdout,
            stderr=subprocess.PIPE if stderr is not None else request.stderr,
            shell=False,
        )
        proc = LocalProc(popen, list(request.cmds), env, stdout=stdout, stderr=stderr, stdin_data=data)
        self._track(proc)
        _get_logger().debug(f"Started {request.cmds} as pid {popen.pid}")
        return proc

    def launch_channel(self, cmd: list[str], out, work_dir=None,
                       env_vars: dict[str, str] | None = None) -> PipeChannel:
        """
        Start an agent (e.g. scripts/cygpath_agent.py) and return a channel
        speaking to it over stdin/stdout. The agent's stderr goes to `out`.
        """
        if not cmd:
            raise ValueError("launch_channel needs a command")
        env = self._environment(env_vars)
        pump = _needs_pipe(out)
        if out is None:
            stderr = subprocess.DEVNULL
        elif pump:
            stderr = subprocess.PIPE
        else:
            stderr = out

        popen = subprocess.Popen(
            list(cmd),
            cwd=str(work_dir) if work_dir is not None else None,
            env=env,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=stderr,
            text=True,
            encoding="utf-8",
            bufsize=1,
            shell=False,
        )
        if pump:
            threading.Thread(target=_pump, args=(popen.stderr, out), daemon=True).start()

        proc = LocalProc(popen, list(cmd), env)
        self._track(proc)
        _get_logger().info(f"Channel agent {cmd[0]} started as pid {popen.pid}")
        return PipeChannel(popen.stdout, popen.stdin, proc=proc, name=f"channel:{cmd[0]}")

    def kill(self, env_vars: dict[str, str]) -> None:
        """Kill live children whose environment carries every pair in `env_vars`."""
        if not env_vars:
            return  # an empty model would match everything
        with self._lock:
            procs = [p for p in self._procs if p.is_alive()]
            self._procs = procs
        for proc in procs:
            if all(proc.env.get(k) == v for k, v in env_vars.items()):
                _get_logger().info(f"Killing pid {proc.pid} ({proc.cmds[0]})")
                proc.kill()
