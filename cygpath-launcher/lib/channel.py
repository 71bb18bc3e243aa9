"""
Execution channels.

A channel runs small named queries on the host at its far end and hands the
result back, e.g. "where is cygpath installed on that agent?". Queries take
no arguments and return JSON-serializable values.

- LocalChannel: the far end is this process.
- PipeChannel: JSON lines over a pair of text streams, typically the
  stdin/stdout of an agent started with Launcher.launch_channel().
  serve() is the loop that answers on the agent side.
"""
import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable

_logger = None

_TASKS: dict[str, Callable] = {}


def _get_logger():
    global _logger
    if _logger is None:
        _logger = logging.getLogger("cygpath.channel")
    return _logger


class ChannelError(IOError):
    """Transport-level failure talking to the far end of a channel."""
    pass


class RemoteTaskError(ChannelError):
    """The task itself failed on the far end."""

    def __init__(self, message: str, remote_type: str = "Exception"):
        super().__init__(message)
        self.remote_type = remote_type


def remote_task(name: str):
    """Register a no-argument function as a query callable over channels."""
    def register(fn):
        _TASKS[name] = fn
        fn.remote_task_name = name
        return fn
    return register


def get_task(name: str) -> Callable:
    try:
        return _TASKS[name]
    except KeyError:
        raise RemoteTaskError(f"Unknown task: {name}", "KeyError") from None


def _task_name(task) -> str:
    if isinstance(task, str):
        return task
    name = getattr(task, "remote_task_name", None)
    if name is None:
        raise ValueError(f"{task!r} is not registered with @remote_task")
    return name


class VirtualChannel(ABC):
    """Something that can run a registered task on some host."""

    @abstractmethod
    def call(self, task):
        """Run `task` (a registered name or function) and return its result."""

    def close(self) -> None:
        pass


class LocalChannel(VirtualChannel):
    """Runs tasks in the current process. Task exceptions propagate as-is."""

    def call(self, task):
        return get_task(_task_name(task))()


class PipeChannel(VirtualChannel):
    """
    JSON-lines RPC over text streams.

    Request:  {"id": 1, "task": "get_cygpath_exe"}
    Reply:    {"id": 1, "result": "C:\\cygwin64\\bin\\cygpath"}
           or {"id": 1, "error": "...", "type": "CygwinNotFoundError"}
    """

    def __init__(self, reader, writer, proc=None, name: str = "channel"):
        self.reader = reader
        self.writer = writer
        self.proc = proc
        self.name = name
        self._lock = threading.Lock()
        self._next_id = 0
        self._closed = False

    def call(self, task):
        name = _task_name(task)
        with self._lock:
            if self._closed:
                raise ChannelError(f"{self.name} is closed")
            self._next_id += 1
            request_id = self._next_id
            try:
                self.writer.write(json.dumps({"id": request_id, "task": name}) + "\n")
                self.writer.flush()
                line = self.reader.readline()
            except (OSError, ValueError) as e:
                raise ChannelError(f"{self.name}: transport failure calling {name}") from e

        if not line:
            raise ChannelError(f"{self.name}: unexpected EOF waiting for {name}")
        try:
            reply = json.loads(line)
        except json.JSONDecodeError as e:
            raise ChannelError(f"{self.name}: malformed reply {line[:200]!r}") from e
        if not isinstance(reply, dict) or reply.get("id") != request_id:
            raise ChannelError(f"{self.name}: reply does not match request {request_id}")
        if "error" in reply:
            raise RemoteTaskError(reply["error"], reply.get("type", "Exception"))
        return reply.get("result")

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for stream in (self.writer, self.reader):
                try:
                    stream.close()
                except OSError:
                    pass
        if self.proc is not None:
            self.proc.kill()


def serve(reader, writer) -> int:
    """
    Answer PipeChannel requests until `reader` hits EOF.

    Returns the number of requests handled. Task failures are reported to the
    caller and never end the loop.
    """
    logger = _get_logger()
    handled = 0
    for line in reader:
        line = line.strip()
        if not line:
            continue
        try:
            request = json.loads(line)
            request_id = request["id"]
            name = request["task"]
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.error(f"Dropping malformed request {line[:200]!r}: {e}")
            continue

        try:
            reply = {"id": request_id, "result": get_task(name)()}
        except RemoteTaskError as e:
            reply = {"id": request_id, "error": str(e), "type": e.remote_type}
        except Exception as e:
            logger.info(f"Task {name} failed: {e}")
            reply = {"id": request_id, "error": str(e), "type": type(e).__name__}

        writer.write(json.dumps(reply) + "\n")
        writer.flush()
        handled += 1
    return handled
