"""
If we are on Windows, convert the path of the executable via Cygwin.

Commands launched on a non-Unix launcher whose executable is a path
(contains '/' or '\\') get that path rewritten by running "cygpath -w" on
the same host. Bare command names are left for PATH lookup.

Translation is best-effort: when cygpath cannot be located or run, the
command is launched exactly as given.
"""
import io
import locale
import logging

import cancellation
import cygwin_locator
from config import get_timeout
from extensions import LauncherDecorator, extension
from launcher import Launcher, LaunchRequest, Node
from path_utils import has_path_separator

# Used when the launcher has no channel to ask the host where Cygwin lives
FALLBACK_CYGPATH = "cygpath"

_logger = None


def _get_logger():
    global _logger
    if _logger is None:
        _logger = logging.getLogger("cygpath.decorator")
    return _logger


@extension
class CygpathLauncherDecorator(LauncherDecorator):
    def decorate(self, base: Launcher, node: Node) -> Launcher:
        if base.is_unix():
            return base  # no decoration on Unix
        return CygpathLauncher(base, node)


class CygpathLauncher(Launcher):
    """Forwards everything to `base`, translating the executable first."""

    def __init__(self, base: Launcher, node: Node | None = None):
        super().__init__(base.get_channel())
        self.base = base
        self.node = node

    def is_unix(self) -> bool:
        return self.base.is_unix()

    def get_channel(self):
        return self.base.get_channel()

    def launch(self, request: LaunchRequest):
        request = request.copy()
        request.cmds = self.cygpath(request.cmds)
        return self.base.launch(request)

    def launch_channel(self, cmd, out, work_dir=None, env_vars=None):
        return self.base.launch_channel(self.cygpath(list(cmd)), out, work_dir, env_vars)

    def kill(self, env_vars):
        self.base.kill(env_vars)

    def cygpath(self, cmds: list[str]) -> list[str]:
        """
        Replace cmds[0] with the output of "cygpath -w cmds[0]".

        `cmds` is modified in place and returned. It is returned unchanged
        when the executable is a bare name, when cygpath exits non-zero or
        prints nothing, and when anything goes wrong along the way.
        """
        if not cmds or not has_path_separator(cmds[0]):
            # a single token is found in PATH; "cygpath -w" would prepend the current directory
            return cmds

        logger = _get_logger()
        exe = cmds[0]
        try:
            out = io.BytesIO()
            proc = self.base.run([self.get_cygpath_exe(), "-w", exe], stdout=out)
            if proc.join(timeout=get_timeout()) == 0:
                converted = out.getvalue().decode(locale.getpreferredencoding(False), errors="replace").strip()
                # cygwin 1.7 has been seen exiting 0 with no output
                if converted:
                    logger.info(f"Translated {exe} to {converted}")
                    cmds[0] = converted
        except InterruptedError:
            # handle the interrupt later
            cancellation.interrupt()
        except Exception as e:
            logger.warning(f"cygpath translation of {exe} failed, launching it as given: {e}")
        return cmds

    def get_cygpath_exe(self) -> str:
        channel = self.base.get_channel()
        if channel is None:
            return FALLBACK_CYGPATH
        return channel.call(cygwin_locator.get_cygpath_exe)
