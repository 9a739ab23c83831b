"""Test favourite folder listing and the concurrent page fan-out"""

import asyncio

import pytest

from bili_cli.api.client import BiliAPIClient
from bili_cli.api.constants import (
    FAV_FOLDER_CREATED_LIST_API_URL,
    FAV_FOLDER_INFO_API_URL,
    FAV_RESOURCE_LIST_API_URL,
)
from bili_cli.api.transport import TransportResponse
from bili_cli.models.folder import RESOURCE_TYPE_VIDEO
from bili_cli.utils.page_aggregator import PageAggregator, page_count

FOLDER_INFO = {
    "id": 1052622027,
    "fid": 10526220,
    "mid": 2,
    "title": "Music",
    "cover": "//i0.hdslb.com/folder.jpg",
    "intro": "",
    "media_count": 45,
    "cnt_info": {"collect": 1, "play": 2, "thumb_up": 3},
}


def folder_info_payload(count: int = 45) -> dict:
    return {"code": 0, "data": {**FOLDER_INFO, "media_count": count}}


def resource_page_payload(page: int, size: int) -> dict:
    return {
        "code": 0,
        "data": {
            "info": FOLDER_INFO,
            "medias": [
                {
                    "id": page * 100 + i,
                    "type": RESOURCE_TYPE_VIDEO,
                    "bvid": f"BV{page}x{i}",
                    "title": f"item {page}-{i}",
                    "cover": "//i0.hdslb.com/x.jpg",
                    "duration": 60,
                    "upper": {"mid": 5, "name": "uploader"},
                    "cnt_info": {"play": 10, "danmaku": 1},
                    "fav_time": 1700000000,
                }
                for i in range(size)
            ],
            "has_more": page < 3,
        },
    }


def page_sizes(total: int, size: int = 20) -> dict[int, int]:
    return {
        page: min(size, total - (page - 1) * size)
        for page in range(1, page_count(total, size) + 1)
    }


@pytest.fixture
def folder_transport(transport):
    transport.json(FAV_FOLDER_INFO_API_URL, folder_info_payload())
    return transport


def serve_pages(transport, delays=None, failing=()):
    sizes = page_sizes(45)

    async def handler(call):
        page = int(call.query["pn"])
        await asyncio.sleep((delays or {}).get(page, 0))
        if page in failing:
            return TransportResponse(500, b"upstream error")
        return resource_page_payload(page, sizes[page])

    transport.route(FAV_RESOURCE_LIST_API_URL, handler)


def test_page_count():
    assert page_count(0, 20) == 0
    assert page_count(-3, 20) == 0
    assert page_count(1, 20) == 1
    assert page_count(20, 20) == 1
    assert page_count(45, 20) == 3


async def test_created_folders(client, transport):
    transport.json(
        FAV_FOLDER_CREATED_LIST_API_URL,
        {"code": 0, "data": {"count": 2, "list": [FOLDER_INFO, {**FOLDER_INFO, "id": 7}]}},
    )

    folders = await client.get_user_created_fav_folders(2)

    assert [f.media_id for f in folders] == [1052622027, 7]
    assert folders[0].cover_url == "https://i0.hdslb.com/folder.jpg"
    assert folders[0].like_count == 3
    assert transport.calls_to(FAV_FOLDER_CREATED_LIST_API_URL)[0].query == {"up_mid": "2"}


async def test_created_folders_empty(client, transport):
    transport.json(FAV_FOLDER_CREATED_LIST_API_URL, {"code": 0, "data": None})
    assert await client.get_user_created_fav_folders(2) == []


async def test_folder_contents_single_page(client, folder_transport):
    serve_pages(folder_transport)

    contents = await client.get_fav_folder_contents(
        1052622027, page=2, keyword="lofi", tid=3, scope_type=0
    )

    assert contents.info.title == "Music"
    assert contents.has_more
    assert len(contents.items) == 20
    item = contents.items[0]
    assert item.bvid == "BV2x0"
    assert item.upper_name == "uploader"
    assert item.play == 10
    query = folder_transport.calls_to(FAV_RESOURCE_LIST_API_URL)[0].query
    assert query["pn"] == "2"
    assert query["ps"] == "20"
    assert query["keyword"] == "lofi"
    assert query["tid"] == "3"
    assert query["type"] == "0"


async def test_all_items_are_fetched_in_page_order(client, folder_transport):
    # Page 1 finishes last; output order must not depend on completion order
    serve_pages(folder_transport, delays={1: 0.03, 2: 0.0, 3: 0.01})

    items = await client.get_all_fav_folder_items(1052622027)

    assert len(items) == 45
    assert [item.id for item in items] == (
        [100 + i for i in range(20)] + [200 + i for i in range(20)] + [300 + i for i in range(5)]
    )
    assert sorted(
        int(call.query["pn"]) for call in folder_transport.calls_to(FAV_RESOURCE_LIST_API_URL)
    ) == [1, 2, 3]


async def test_failed_page_leaves_gap(client, folder_transport):
    serve_pages(folder_transport, failing={2})

    items = await client.get_all_fav_folder_items(1052622027)

    assert len(items) == 25
    assert [item.id for item in items] == [100 + i for i in range(20)] + [
        300 + i for i in range(5)
    ]


async def test_empty_folder_requests_no_pages(client, transport):
    transport.json(FAV_FOLDER_INFO_API_URL, folder_info_payload(count=0))
    serve_pages(transport)

    assert await client.get_all_fav_folder_items(1052622027) == []
    assert transport.calls_to(FAV_RESOURCE_LIST_API_URL) == []


async def test_page_requests_respect_concurrency_limit(transport, clock):
    client = BiliAPIClient(transport=transport, max_concurrent_pages=1, clock=clock)
    transport.json(FAV_FOLDER_INFO_API_URL, folder_info_payload())
    in_flight = 0
    peak = 0
    sizes = page_sizes(45)

    async def handler(call):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.005)
        in_flight -= 1
        page = int(call.query["pn"])
        return resource_page_payload(page, sizes[page])

    transport.route(FAV_RESOURCE_LIST_API_URL, handler)

    items = await client.get_all_fav_folder_items(1052622027)

    assert len(items) == 45
    assert peak == 1


async def test_pages_are_all_requested_at_once_by_default(client, folder_transport):
    in_flight = 0
    peak = 0
    sizes = page_sizes(45)

    async def handler(call):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        page = int(call.query["pn"])
        return resource_page_payload(page, sizes[page])

    folder_transport.route(FAV_RESOURCE_LIST_API_URL, handler)

    items = await client.get_all_fav_folder_items(1052622027)

    assert len(items) == 45
    assert peak == 3


class TestPageAggregator:
    async def test_zero_pages(self):
        calls = []

        async def fetch(page):
            calls.append(page)
            return [page]

        assert await PageAggregator(fetch).fetch_all(0) == []
        assert calls == []

    async def test_results_sorted_by_page(self):
        async def fetch(page):
            await asyncio.sleep(0.01 * (4 - page))
            return [f"{page}a", f"{page}b"]

        result = await PageAggregator(fetch, max_concurrent=4).fetch_all(3)
        assert result == ["1a", "1b", "2a", "2b", "3a", "3b"]

    async def test_exception_becomes_empty_page(self):
        async def fetch(page):
            if page == 1:
                raise RuntimeError("boom")
            return [page]

        assert await PageAggregator(fetch, label="test").fetch_all(3) == [2, 3]

    async def test_unbounded_by_default(self):
        started = []
        release = asyncio.Event()

        async def fetch(page):
            started.append(page)
            await release.wait()
            return [page]

        task = asyncio.ensure_future(PageAggregator(fetch).fetch_all(12))
        for _ in range(100):
            if len(started) == 12:
                break
            await asyncio.sleep(0)

        assert sorted(started) == list(range(1, 13))
        release.set()

        assert await task == list(range(1, 13))
