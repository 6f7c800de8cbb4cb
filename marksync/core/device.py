"""Human-readable identity of the device performing a sync."""

from __future__ import annotations

import platform
import socket

_OS_NAMES = {
    "Windows": "Windows",
    "Darwin": "Mac OS",
    "Linux": "Linux",
}


def device_label(configured: str | None = None) -> str:
    """Return the label written into remote metadata as ``device``.

    An explicitly configured name wins; otherwise ``"<OS> (<hostname>)"``.
    """
    if configured and configured.strip():
        return configured.strip()
    os_name = _OS_NAMES.get(platform.system(), platform.system() or "Unknown OS")
    try:
        host = socket.gethostname() or "unknown-host"
    except OSError:
        host = "unknown-host"
    return f"{os_name} ({host})"
