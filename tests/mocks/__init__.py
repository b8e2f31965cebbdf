"""
Centralized mock objects for testing.

This package provides reusable mock factories and an in-process WebSocket
client, reducing code duplication across test files.
"""
