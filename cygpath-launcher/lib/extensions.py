"""
Launcher decoration extension point.

A host framework builds a Launcher for a node and passes it through
decorate_launcher(), which applies every registered LauncherDecorator in
registration order. Decorators register themselves with @extension.
"""
from abc import ABC, abstractmethod

from launcher import Launcher, Node

_DECORATORS: list["LauncherDecorator"] = []


class LauncherDecorator(ABC):
    """Wraps launchers created for a node."""

    @abstractmethod
    def decorate(self, launcher: Launcher, node: Node) -> Launcher:
        """Return `launcher` itself or a launcher wrapping it."""


def extension(cls):
    """Class decorator: instantiate `cls` and register it."""
    _DECORATORS.append(cls())
    return cls


def all_decorators() -> list[LauncherDecorator]:
    return list(_DECORATORS)


def decorate_launcher(launcher: Launcher, node: Node) -> Launcher:
    for decorator in _DECORATORS:
        launcher = decorator.decorate(launcher, node)
    return launcher


# Built-in decorators register themselves on import
import cygpath_decorator  # noqa: E402,F401
