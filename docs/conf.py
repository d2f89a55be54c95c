"""Sphinx configuration for handpose-overlay documentation."""

from __future__ import annotations

import os
import sys

sys.path.insert(0, os.path.abspath("../src"))

from handpose_overlay.__about__ import __version__  # noqa: E402

project = "handpose-overlay"
author = "handpose-overlay contributors"
copyright = "handpose-overlay contributors"
release = __version__

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.viewcode",
]

master_doc = "index"
autodoc_member_order = "bysource"
autodoc_typehints = "description"
# Optional extras; cv2 and numpy are core dependencies and import for real.
autodoc_mock_imports = ["mediapipe", "rerun"]

exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]

html_theme = "alabaster"
