"""
HTTP layer of the NoteVault backend.
"""
