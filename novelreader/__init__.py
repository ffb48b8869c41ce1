"""Manage a library of text novels and read them aloud with text-to-speech."""

__version__ = "0.1.0"