"""
Data Models Layer.

This package contains the configuration model and the dataclasses that the
API client parses responses into.
"""

from .config import ClientConfig
from .folder import FavFolder, FavResourceItem, FavResourcePage
from .playinfo import PlayInfo, PlayOptions, StreamDescriptor
from .video import SearchVideoPage, VideoBasicInfo, VideoPage, VideoStats

__all__ = [
    "ClientConfig",
    "FavFolder",
    "FavResourceItem",
    "FavResourcePage",
    "PlayInfo",
    "PlayOptions",
    "SearchVideoPage",
    "StreamDescriptor",
    "VideoBasicInfo",
    "VideoPage",
    "VideoStats",
]
