"""
Services implementing the note storage operations.
"""
