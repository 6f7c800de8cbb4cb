"""Constants for WebDAV synchronization."""

META_FILE = "meta.json"
BOOKMARKS_FILE = "data.json.gz"
CONFIG_FILE = "config.json"

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_GZIP = "application/gzip"

CATEGORY_BOOKMARKS = "bookmarks"
CATEGORY_CONFIG = "config"

# Status-store key for the WebDAV service entry
STATUS_SERVICE_WEBDAV = "webdav"

SYNC_RESULT_SUCCESS = "success"

GZIP_COMPRESS_LEVEL = 6
