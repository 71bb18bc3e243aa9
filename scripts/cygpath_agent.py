"""
Channel agent.

Answers PipeChannel requests on stdin/stdout until stdin closes. This is the
command LocalLauncher.launch_channel() is pointed at on the far host, e.g.

    launcher.launch_channel([sys.executable, "scripts/cygpath_agent.py"], sys.stderr)

Logging goes to stderr; stdout carries only channel replies.
"""
import sys; sys.path.insert(0, str(__import__('pathlib').Path(__file__).resolve().parent.parent / "cygpath-launcher" / "lib"))
import bootstrap  # noqa: F401

import cygwin_locator  # noqa: F401  registers get_cygpath_exe
from channel import serve


if __name__ == "__main__":
    serve(sys.stdin, sys.stdout)
