"""
Dependency file watching for the zatserver package.
"""

from .watcher import (
    ChangeKind,
    DependencyWatcher,
    FileWatcher,
    classify_event,
    read_file,
)

__all__ = [
    "ChangeKind",
    "DependencyWatcher",
    "FileWatcher",
    "classify_event",
    "read_file",
]
