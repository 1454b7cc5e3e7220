"""
Kiro Notes - the storage and retrieval core of a personal note-taking tool.
This package keeps free-text notes in a single SQLite file, answers keyword
and date-range queries over them, imports text files with duplicate
detection, and exports notes as Markdown.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("kiro-notes")
except PackageNotFoundError:
    __version__ = "0.4.0"
