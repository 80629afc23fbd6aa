"""
Directory Module.

Employee directory kept in sync with a Firestore-style document store.
"""

from modules.directory.directory_module import DirectoryModule

__all__ = ["DirectoryModule"]
