"""SnapVCS - a minimal version-control storage engine.

SnapVCS snapshots a working directory into a content-addressable object
store, tracks the last observed state of every path in an index, and
chains snapshots into a linear commit history pointed to by HEAD.
"""

__version__ = "0.1.0"
__author__ = "SnapVCS Contributors"

__all__ = ["__version__", "__author__"]
