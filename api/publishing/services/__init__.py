"""Services for the Publishing API."""

from publishing.services.cache import (
    CacheInvalidationSink,
    HttpInvalidationSink,
    LoggingInvalidationSink,
    RecordingInvalidationSink,
    build_invalidation_sink,
)
from publishing.services.posts import MAX_BATCH_SIZE, PostLifecycleManager

__all__ = [
    "PostLifecycleManager",
    "MAX_BATCH_SIZE",
    "CacheInvalidationSink",
    "HttpInvalidationSink",
    "LoggingInvalidationSink",
    "RecordingInvalidationSink",
    "build_invalidation_sink",
]
