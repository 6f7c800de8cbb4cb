"""marksync - WebDAV synchronization engine for a personal bookmark manager.

Example Usage:
    >>> from marksync import WebDAVSyncService, load_config
    >>> cfg = load_config()
    >>> result = await service.sync()
"""

__version__ = "0.4.0"

from marksync.adapters.webdav.sync_service import WebDAVSyncService
from marksync.config import load_config

__all__ = ["WebDAVSyncService", "__version__", "load_config"]
