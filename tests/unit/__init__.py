"""Unit tests for live objects.

Fast, isolated tests for individual components.
No network; file system only through temporary directories.
"""
