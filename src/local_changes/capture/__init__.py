"""
capture - Change capture module.
"""

from local_changes.capture.change_capture import (
    enable_change_capture,
    disable_change_capture,
    is_capture_enabled,
    get_captured_tables,
)
from local_changes.capture.origin import (
    Origin,
    OriginMarker,
    sync_applied,
    values_differ,
)

__all__ = [
    "enable_change_capture",
    "disable_change_capture",
    "is_capture_enabled",
    "get_captured_tables",
    "Origin",
    "OriginMarker",
    "sync_applied",
    "values_differ",
]
