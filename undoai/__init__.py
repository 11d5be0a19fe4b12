"""undoai - a local undo button for AI coding.

Watches a project directory, detects bursts of file edits and keeps
compressed, restorable snapshots of the files they touched.
"""

__version__ = "1.0.0"
