"""Widget library for the Textual UI."""

from __future__ import annotations

from .explorer_tree import ExplorerItem, ExplorerTree
from .status_bar import StatusBar

__all__ = ["ExplorerItem", "ExplorerTree", "StatusBar"]
