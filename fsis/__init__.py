"""
FS Image Server: serves files from configured directories to a wiki.
"""

__version__ = "0.1.0"
