"""WebDAV integration adapter for bookmark and configuration synchronization."""

from marksync.adapters.webdav.client import WebDAVClient
from marksync.adapters.webdav.sync_service import WebDAVSyncService

__all__ = ["WebDAVClient", "WebDAVSyncService"]
