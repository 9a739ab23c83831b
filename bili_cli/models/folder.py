"""
Favourite folder models.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from bili_cli.utils.formatting import ensure_https
from bili_cli.utils.json_fields import (
    as_object,
    get_bool,
    get_int,
    get_list,
    get_object,
    get_optional_int,
    get_str,
)

# FavResourceItem.type values
RESOURCE_TYPE_VIDEO = 2
RESOURCE_TYPE_AUDIO = 12
RESOURCE_TYPE_COLLECTION = 21


@dataclass(frozen=True)
class FavFolder:
    media_id: int
    fid: int
    mid: int
    title: str
    cover_url: str
    intro: str
    count: int
    like_count: Optional[int] = None
    play_count: Optional[int] = None
    collect_count: Optional[int] = None


@dataclass(frozen=True)
class FavResourceItem:
    type: int
    # avid, auid or collection id depending on `type`
    id: int
    bvid: Optional[str]
    title: str
    cover_url: str
    intro: str
    duration_sec: int
    upper_mid: int
    upper_name: str
    play: Optional[int]
    danmaku: Optional[int]
    fav_time: Optional[int]


@dataclass
class FavResourcePage:
    info: FavFolder
    items: List[FavResourceItem]
    has_more: bool


def parse_fav_folder(obj: Dict[str, Any]) -> FavFolder:
    cnt_info = get_object(obj, "cnt_info")
    return FavFolder(
        media_id=get_int(obj, "id"),
        fid=get_int(obj, "fid"),
        mid=get_int(obj, "mid"),
        title=get_str(obj, "title"),
        cover_url=ensure_https(get_str(obj, "cover")),
        intro=get_str(obj, "intro"),
        count=get_int(obj, "media_count"),
        like_count=get_optional_int(cnt_info, "thumb_up") if cnt_info else None,
        play_count=get_optional_int(cnt_info, "play") if cnt_info else None,
        collect_count=get_optional_int(cnt_info, "collect") if cnt_info else None,
    )


def parse_fav_resource_item(obj: Dict[str, Any]) -> FavResourceItem:
    upper = as_object(obj.get("upper"))
    cnt_info = as_object(obj.get("cnt_info"))
    return FavResourceItem(
        type=get_int(obj, "type"),
        id=get_int(obj, "id"),
        bvid=get_str(obj, "bvid", "bv_id") or None,
        title=get_str(obj, "title"),
        cover_url=ensure_https(get_str(obj, "cover")),
        intro=get_str(obj, "intro"),
        duration_sec=get_int(obj, "duration"),
        upper_mid=get_int(upper, "mid"),
        upper_name=get_str(upper, "name"),
        play=get_optional_int(cnt_info, "play"),
        danmaku=get_optional_int(cnt_info, "danmaku"),
        fav_time=get_optional_int(obj, "fav_time"),
    )


def parse_created_folders(payload: Dict[str, Any]) -> List[FavFolder]:
    data = as_object(payload.get("data"))
    return [parse_fav_folder(o) for o in get_list(data, "list") if isinstance(o, dict)]


def parse_folder_info(payload: Dict[str, Any]) -> FavFolder:
    return parse_fav_folder(as_object(payload.get("data")))


def parse_resource_page(payload: Dict[str, Any]) -> FavResourcePage:
    data = as_object(payload.get("data"))
    return FavResourcePage(
        info=parse_fav_folder(as_object(data.get("info"))),
        items=[
            parse_fav_resource_item(m)
            for m in get_list(data, "medias")
            if isinstance(m, dict)
        ],
        has_more=get_bool(data, "has_more"),
    )
