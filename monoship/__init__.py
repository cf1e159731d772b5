"""
monoship — publish packages out of a JavaScript monorepo

monoship extracts packages from a workspace monorepo and publishes each one
as a self-contained artifact:

    • Internal dependencies are folded into ``deps/`` of the published package
    • Import specifiers of internal packages are rewritten to relative paths
    • Third-party dependencies of the whole closure are merged and checked
      for conflicting versions
    • Batches are published in two phases (``pending``, then ``latest``) so
      that a failed release never becomes visible
"""

from __future__ import annotations

from monoship.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "monoship Contributors"
__license__ = "Apache-2.0"
__description__ = "Publish self-contained packages out of a JavaScript monorepo."

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "__version__",
]
