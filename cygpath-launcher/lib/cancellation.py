"""
Per-thread interrupt status.

Python threads cannot be interrupted from outside, so blocking waits in this
library (Proc.join) poll a flag kept here instead. A wait that observes the
flag clears it and raises InterruptedError. Code that swallows that error
must call interrupt() again so an outer caller still sees the request.
"""
import threading
import weakref

_lock = threading.Lock()
# Thread objects, not idents: an ident is reused once its thread exits
_interrupted: "weakref.WeakSet[threading.Thread]" = weakref.WeakSet()


def interrupt(thread: threading.Thread | None = None) -> None:
    """Mark `thread` (default: the calling thread) as interrupted."""
    with _lock:
        _interrupted.add(thread or threading.current_thread())


def is_interrupted(thread: threading.Thread | None = None) -> bool:
    """Check the interrupt status without clearing it."""
    with _lock:
        return (thread or threading.current_thread()) in _interrupted


def interrupted() -> bool:
    """Test and clear the calling thread's interrupt status."""
    thread = threading.current_thread()
    with _lock:
        if thread in _interrupted:
            _interrupted.discard(thread)
            return True
        return False
