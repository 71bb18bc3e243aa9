"""
Common bootstrap for scripts.

Sets up:
1. sys.path to include the lib directory
2. logging, at the level named by CYGPATH_LOG_LEVEL (default WARNING)

Usage (2 lines at top of each script):
    import sys; sys.path.insert(0, str(__import__('pathlib').Path(__file__).resolve().parent.parent / "cygpath-launcher" / "lib"))
    import bootstrap  # noqa: F401
"""
import logging
import sys
from pathlib import Path

# Step 1: Add lib directory to path
_lib_dir = str(Path(__file__).parent)
if _lib_dir not in sys.path:
    sys.path.insert(0, _lib_dir)

from config import get_log_level


# Step 2: Configure logging once, on stderr (stdout may carry a channel)
def configure_logging() -> None:
    root = logging.getLogger()
    if root.handlers:
        return
    logging.basicConfig(
        level=get_log_level(),
        stream=sys.stderr,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


configure_logging()
