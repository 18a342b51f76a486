"""
Scratchspaces: ephemeral, per-owner cache directories.

Each space lives at <depot>/scratchspaces/<owner-uuid>/<key>/ and is
attributed, at most once a day, to the project that is using it so a
garbage collector can tell live spaces from orphans.
"""

import os

__version__ = "0.1.0"
__author__ = "smilinTux"

DEPOT_PATH = os.environ.get("SCRATCHSPACES_DEPOT", "~/.scratchdepot")
