"""
cygpath launcher library.

Rewrites executable paths through Cygwin's cygpath before launching
processes on Windows hosts.
"""

__version__ = "1.0.0"

# Re-export main modules for convenience
from . import cancellation
from . import config
from . import channel
from . import launcher
from . import extensions
from . import path_utils
from . import cygwin_locator
from . import cygpath_decorator
from . import env_check

__all__ = [
    "cancellation",
    "config",
    "channel",
    "launcher",
    "extensions",
    "path_utils",
    "cygwin_locator",
    "cygpath_decorator",
    "env_check",
]
