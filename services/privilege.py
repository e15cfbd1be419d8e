"""Admin privilege check for Windows."""
from __future__ import annotations

import ctypes
import os


def is_admin() -> bool:
    """Return whether the process is elevated; always ``False`` off Windows."""
    if os.name != "nt":
        return False
    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
    except (AttributeError, OSError):
        return False
