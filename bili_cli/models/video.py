"""
Video metadata and search result models.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bili_cli.utils.formatting import ensure_https, parse_duration_to_seconds, strip_html
from bili_cli.utils.json_fields import (
    as_object,
    get_int,
    get_list,
    get_optional_int,
    get_str,
)


@dataclass(frozen=True)
class VideoStats:
    view: int = 0
    danmaku: int = 0
    reply: int = 0
    favorite: int = 0
    coin: int = 0
    share: int = 0
    like: int = 0


@dataclass(frozen=True)
class VideoPage:
    """One part of a multi-part upload; `cid` is what playurl needs."""

    cid: int
    page: int
    part: str
    duration_sec: int
    width: int
    height: int


@dataclass
class VideoBasicInfo:
    aid: int
    bvid: str
    title: str
    cover_url: str
    desc: str
    duration_sec: int
    owner_mid: int
    owner_name: str
    owner_face: str
    stats: VideoStats
    pages: List[VideoPage] = field(default_factory=list)


@dataclass(frozen=True)
class SearchVideoItem:
    aid: int
    bvid: str
    title_html: str
    title_plain: str
    author: str
    mid: int
    cover_url: str
    duration_sec: int
    play: Optional[int]
    pubdate: Optional[int]


@dataclass
class SearchVideoPage:
    page: int
    page_size: int
    num_results: int
    num_pages: int
    items: List[SearchVideoItem]


def parse_video_page(obj: Dict[str, Any]) -> VideoPage:
    dimension = as_object(obj.get("dimension"))
    return VideoPage(
        cid=get_int(obj, "cid"),
        page=get_int(obj, "page"),
        part=get_str(obj, "part"),
        duration_sec=get_int(obj, "duration"),
        width=get_int(dimension, "width"),
        height=get_int(dimension, "height"),
    )


def parse_page_list(payload: Dict[str, Any]) -> List[VideoPage]:
    """Parses the pagelist response, whose `data` is a bare array."""
    return [
        parse_video_page(p) for p in get_list(payload, "data") if isinstance(p, dict)
    ]


def _join_desc_v2(items: List[Any]) -> str:
    lines = []
    for item in items:
        if isinstance(item, dict) and (text := get_str(item, "raw_text")).strip():
            lines.append(text)
    return "\n".join(lines)


def parse_video_basic_info(payload: Dict[str, Any]) -> VideoBasicInfo:
    data = as_object(payload.get("data"))
    owner = as_object(data.get("owner"))
    stat = as_object(data.get("stat"))

    desc_v2 = get_list(data, "desc_v2")
    desc = _join_desc_v2(desc_v2) if desc_v2 else get_str(data, "desc")

    return VideoBasicInfo(
        aid=get_int(data, "aid"),
        bvid=get_str(data, "bvid"),
        title=get_str(data, "title"),
        cover_url=ensure_https(get_str(data, "pic")),
        desc=desc,
        duration_sec=get_int(data, "duration"),
        owner_mid=get_int(owner, "mid"),
        owner_name=get_str(owner, "name"),
        owner_face=ensure_https(get_str(owner, "face")),
        stats=VideoStats(
            view=get_int(stat, "view"),
            danmaku=get_int(stat, "danmaku"),
            reply=get_int(stat, "reply"),
            favorite=get_int(stat, "favorite"),
            coin=get_int(stat, "coin"),
            share=get_int(stat, "share"),
            like=get_int(stat, "like"),
        ),
        pages=[
            parse_video_page(p) for p in get_list(data, "pages") if isinstance(p, dict)
        ],
    )


def parse_search_page(payload: Dict[str, Any], requested_page: int) -> SearchVideoPage:
    """Parses a `search_type=video` response, skipping non-video results."""
    data = as_object(payload.get("data"))
    items = []
    for obj in get_list(data, "result"):
        if not isinstance(obj, dict) or get_str(obj, "type") != "video":
            continue
        title_html = get_str(obj, "title")
        items.append(
            SearchVideoItem(
                aid=get_int(obj, "aid"),
                bvid=get_str(obj, "bvid"),
                title_html=title_html,
                title_plain=strip_html(title_html),
                author=get_str(obj, "author"),
                mid=get_int(obj, "mid"),
                cover_url=ensure_https(get_str(obj, "pic")),
                duration_sec=parse_duration_to_seconds(get_str(obj, "duration")),
                play=get_optional_int(obj, "play"),
                pubdate=get_optional_int(obj, "pubdate"),
            )
        )

    return SearchVideoPage(
        page=get_int(data, "page", default=requested_page),
        page_size=get_int(data, "pagesize", default=len(items)),
        num_results=get_int(data, "numResults", default=len(items)),
        num_pages=get_int(data, "numPages", default=1),
        items=items,
    )
