"""
Screen configuration synchronization engine for photobooth terminals.
"""

__version__ = "0.1.0"
