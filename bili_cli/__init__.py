"""
bili-cli: a signed media-resolution client for the Bilibili web API.
"""

__version__ = "0.1.0"
