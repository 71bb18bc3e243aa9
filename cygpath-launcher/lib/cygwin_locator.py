"""
Cygwin installation lookup.

Runs on the host that will execute the translated command, either directly
or as the "get_cygpath_exe" task over a channel. The setup key is read from
the registry with REG QUERY, first through the 32-bit view (Wow6432Node),
then the native one.
"""
import logging
import subprocess

from channel import remote_task
from config import get_timeout
from path_utils import host_path

REGISTRY_PREFIXES = ("SOFTWARE\\Wow6432Node\\", "SOFTWARE\\")
SETUP_KEY = "Cygwin\\setup"

_logger = None


def _get_logger():
    global _logger
    if _logger is None:
        _logger = logging.getLogger("cygpath.locator")
    return _logger


class CygwinNotFoundError(IOError):
    """Raised when no registry view yields a Cygwin installation root."""
    pass


def query_registry(prefix: str) -> str:
    """
    Run REG QUERY for the Cygwin setup key under `prefix`.

    Returns stdout, or "" when REG reports the key as missing (non-zero
    exit). Failing to run REG at all raises OSError or SubprocessError.
    """
    key = f"HKEY_LOCAL_MACHINE\\{prefix}{SETUP_KEY}"
    result = subprocess.run(
        ["REG", "QUERY", key],
        capture_output=True, text=True, timeout=get_timeout(), shell=False
    )
    if result.returncode != 0:
        return ""
    return result.stdout or ""


def parse_root(output: str) -> str:
    """Last whitespace-separated token of REG QUERY output, or ""."""
    bits = output.split()
    if not bits:
        return ""
    return bits[-1].replace("\r", "").replace("\n", "").replace(" ", "")


def get_cygwin_root() -> str:
    """Where is Cygwin installed?"""
    logger = _get_logger()
    err = None
    for prefix in REGISTRY_PREFIXES:
        try:
            output = query_registry(prefix)
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"REG QUERY failed for {prefix}: {e}")
            err = e
            continue

        root = parse_root(output)
        if not root:
            logger.debug(f"No Cygwin setup key under {prefix}")
            continue

        logger.info(f"Cygwin path for {prefix} is {root}")
        return root

    raise CygwinNotFoundError("Failed to locate Cygwin installation. Is Cygwin installed?") from err


@remote_task("get_cygpath_exe")
def get_cygpath_exe() -> str:
    """Full path of cygpath on this host, as a plain string."""
    return host_path(get_cygwin_root(), "bin", "cygpath")
