"""Path helpers shared by the locator and the launcher decorator."""
import os

# Either separator marks a multi-segment path on a Windows host
SEPARATORS = ("/", "\\")


def has_path_separator(token: str) -> bool:
    """
    True if `token` is a path rather than a bare command name.

    Bare names such as "make" are resolved through PATH at launch time, so
    running them through "cygpath -w" would wrongly anchor them to the
    current directory.

    Args:
        token: Executable token of a command line

    Returns:
        True when the token contains '/' or '\\'
    """
    if not token:
        return False
    return any(sep in token for sep in SEPARATORS)


def host_path(root: str, *parts: str) -> str:
    """
    Join path segments with the separator of the host this code runs on.

    The locator runs on the target host (possibly via a channel), so the
    result uses that host's convention, returned as a plain string so it can
    cross a channel.

    Args:
        root: Installation root, e.g. C:\\cygwin64
        parts: Segments below the root

    Returns:
        Joined path string
    """
    return os.path.join(root, *parts)
