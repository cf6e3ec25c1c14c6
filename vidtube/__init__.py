"""
VidTube - video platform backend: accounts, credentials and sessions.
"""

__version__ = "0.1.0"
