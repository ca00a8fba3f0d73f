"""
NoteVault: local-first note storage backend.
"""

__version__ = "1.0.0"
