"""Test the API client against a fake transport"""

import json

import pytest

from bili_cli.api.client import BiliAPIClient
from bili_cli.api.constants import (
    DEFAULT_WEB_USER_AGENT,
    FINGERPRINT_API_URL,
    HAS_LIKE_API_URL,
    NAV_API_URL,
    PAGE_LIST_API_URL,
    PLAY_URL_API_URL,
    REFERER,
    SEARCH_TYPE_API_URL,
    VIEW_API_URL,
)
from bili_cli.api.transport import TransportResponse
from bili_cli.api.wbi import sign_params
from bili_cli.exceptions import ResponseFormatError, TransportError
from bili_cli.models.config import ClientConfig
from bili_cli.models.playinfo import PlayOptions

from .conftest import MIXIN_KEY

PAGE_LIST_PAYLOAD = {
    "code": 0,
    "data": [
        {"cid": 1001, "page": 1, "part": "P1", "duration": 60,
         "dimension": {"width": 1920, "height": 1080}},
        {"cid": 1002, "page": 2, "part": "P2", "duration": 90},
    ],
}

VIEW_PAYLOAD = {
    "code": 0,
    "data": {
        "aid": 170001,
        "bvid": "BV17x411w7KC",
        "title": "Title",
        "pic": "//i0.hdslb.com/bfs/archive/cover.jpg",
        "desc": "old desc",
        "desc_v2": [{"raw_text": "line one", "type": 1}, {"raw_text": "line two"}],
        "duration": 150,
        "owner": {"mid": 2, "name": "up", "face": "https://i0.hdslb.com/face.jpg"},
        "stat": {"view": 10, "danmaku": 1, "reply": 2, "favorite": 3,
                 "coin": 4, "share": 5, "like": 6},
        "pages": [{"cid": 1001, "page": 1, "part": "P1", "duration": 150}],
    },
}

SEARCH_PAYLOAD = {
    "code": 0,
    "data": {
        "page": 2,
        "pagesize": 20,
        "numResults": 1000,
        "numPages": 50,
        "result": [
            {
                "type": "video",
                "aid": 1,
                "bvid": "BV1a",
                "title": '<em class="keyword">lofi</em> mix',
                "author": "someone",
                "mid": 9,
                "pic": "//i1.hdslb.com/x.jpg",
                "duration": "1:02:03",
                "play": 12345,
                "pubdate": 1700000000,
            },
            {"type": "ketang", "aid": 2},
        ],
    },
}


def signature_matches(query: dict) -> bool:
    params = {k: v for k, v in query.items() if k not in ("wts", "w_rid")}
    expected = sign_params(params, MIXIN_KEY, wts=int(query["wts"]))
    return expected["w_rid"] == query["w_rid"]


class TestRequests:
    """Test header handling and error mapping"""

    async def test_anonymous_headers(self, client, transport):
        transport.json(PAGE_LIST_API_URL, PAGE_LIST_PAYLOAD)
        await client.get_video_page_list(bvid="BV1xx")

        [call] = transport.calls_to(PAGE_LIST_API_URL)
        assert call.headers["User-Agent"] == DEFAULT_WEB_USER_AGENT
        assert call.headers["Referer"] == REFERER
        assert call.headers["Cookie"] == "buvid3=B3-GUEST-infoc; buvid4=B4-GUEST-infoc"

    async def test_login_cookies_are_sent(self, logged_in_client, transport):
        transport.json(PAGE_LIST_API_URL, PAGE_LIST_PAYLOAD)
        await logged_in_client.get_video_page_list(bvid="BV1xx")

        [call] = transport.calls_to(PAGE_LIST_API_URL)
        assert "SESSDATA=sess-token" in call.headers["Cookie"]
        assert "bili_jct=csrf-token" in call.headers["Cookie"]

    async def test_no_cookie_header_for_empty_identity(self, client, transport):
        transport.json(FINGERPRINT_API_URL, {"code": 0, "data": {}})
        await client.signer.get_mixin_key()

        [call] = transport.calls_to(NAV_API_URL)
        assert "Cookie" not in call.headers

    async def test_non_2xx_raises_with_status_and_body(self, client, transport):
        transport.route(
            VIEW_API_URL, lambda call: TransportResponse(412, b"request was banned")
        )

        with pytest.raises(TransportError) as exc_info:
            await client.get_video_basic_info_by_bvid("BV1xx")

        assert exc_info.value.status == 412
        assert exc_info.value.body == "request was banned"

    async def test_invalid_json_raises(self, client, transport):
        transport.route(PAGE_LIST_API_URL, lambda call: TransportResponse(200, b"{"))
        with pytest.raises(ResponseFormatError):
            await client.get_video_page_list(bvid="BV1xx")

    async def test_custom_user_agent(self, transport, clock):
        client = BiliAPIClient(transport=transport, user_agent="agent/1.0", clock=clock)
        transport.json(PAGE_LIST_API_URL, PAGE_LIST_PAYLOAD)
        await client.get_video_page_list(aid=170001)

        [call] = transport.calls_to(PAGE_LIST_API_URL)
        assert call.headers["User-Agent"] == "agent/1.0"
        assert call.query == {"aid": "170001"}

    async def test_context_manager_closes_transport(self, client, transport):
        async with client:
            pass
        assert transport.closed

    def test_from_config(self):
        config = ClientConfig(
            cookies={"SESSDATA": "s"}, user_agent="", max_concurrent_pages=4
        )
        client = BiliAPIClient.from_config(config)
        assert client.user_agent == DEFAULT_WEB_USER_AGENT
        assert client.max_concurrent_pages == 4


class TestPlayback:
    async def test_play_info_request_is_signed(self, client, transport, play_payload):
        transport.json(PLAY_URL_API_URL, play_payload)

        info = await client.get_play_info_by_bvid("BV1xx", 1001)

        assert info.ok
        [call] = transport.calls_to(PLAY_URL_API_URL)
        query = call.query
        assert query["bvid"] == "BV1xx"
        assert query["cid"] == "1001"
        assert query["fnval"] == "272"
        assert query["otype"] == "json"
        assert "qn" not in query
        assert "session" not in query
        assert call.url.split("&")[-1].startswith("w_rid=")
        assert signature_matches(query)

    async def test_play_info_by_avid_with_options(self, client, transport, play_payload):
        transport.json(PLAY_URL_API_URL, play_payload)

        await client.get_play_info_by_avid(170001, 1001, PlayOptions(qn=116, fourk=1))

        query = transport.calls_to(PLAY_URL_API_URL)[0].query
        assert query["avid"] == "170001"
        assert query["qn"] == "116"
        assert query["fourk"] == "1"
        assert signature_matches(query)

    async def test_upstream_error_code_is_returned(self, client, transport):
        transport.json(PLAY_URL_API_URL, {"code": -404, "message": "not found"})

        info = await client.get_play_info_by_bvid("BV1xx", 1)

        assert info.code == -404
        assert info.message == "not found"
        assert info.to_stream_descriptors() == []

    async def test_audio_streams(self, client, transport, play_payload):
        transport.json(PLAY_URL_API_URL, play_payload)
        streams = await client.get_audio_streams("BV1xx", 1001)
        assert [s.quality_tag for s in streams] == [None, None, "dolby", "hires"]

    async def test_signing_key_is_fetched_once(self, client, transport, play_payload):
        transport.json(PLAY_URL_API_URL, play_payload)
        for _ in range(3):
            await client.get_play_info_by_bvid("BV1xx", 1001)
        assert len(transport.calls_to(NAV_API_URL)) == 1


class TestMetadata:
    async def test_video_basic_info(self, client, transport):
        transport.json(VIEW_API_URL, VIEW_PAYLOAD)

        info = await client.get_video_basic_info_by_bvid("BV17x411w7KC")

        assert info.aid == 170001
        assert info.cover_url == "https://i0.hdslb.com/bfs/archive/cover.jpg"
        assert info.desc == "line one\nline two"
        assert info.owner_name == "up"
        assert info.stats.like == 6
        assert [p.cid for p in info.pages] == [1001]
        assert signature_matches(transport.calls_to(VIEW_API_URL)[0].query)

    async def test_video_stats_by_bvid(self, client, transport):
        transport.json(VIEW_API_URL, VIEW_PAYLOAD)
        stats = await client.get_video_stats_by_bvid("BV17x411w7KC")
        assert (stats.coin, stats.share) == (4, 5)

    async def test_video_stats_by_avid(self, client, transport):
        transport.json(VIEW_API_URL, VIEW_PAYLOAD)
        stats = await client.get_video_stats_by_avid(170001)
        assert stats.view == 10
        assert transport.calls_to(VIEW_API_URL)[0].query["aid"] == "170001"

    async def test_page_list_and_cid_resolution(self, client, transport):
        transport.json(PAGE_LIST_API_URL, PAGE_LIST_PAYLOAD)

        pages = await client.get_video_page_list(bvid="BV1xx")
        assert [(p.page, p.cid) for p in pages] == [(1, 1001), (2, 1002)]
        assert pages[0].width == 1920
        assert await client.resolve_cid("BV1xx", 2) == 1002
        # Unknown part numbers fall back to the first part
        assert await client.resolve_cid("BV1xx", 9) == 1001

    async def test_resolve_cid_without_pages(self, client, transport):
        transport.json(PAGE_LIST_API_URL, {"code": -404, "data": None})
        with pytest.raises(ValueError):
            await client.resolve_cid("BV1xx")

    async def test_page_list_requires_an_id(self, client):
        with pytest.raises(ValueError):
            await client.get_video_page_list()

    async def test_search(self, client, transport):
        transport.json(SEARCH_TYPE_API_URL, SEARCH_PAYLOAD)

        result = await client.search_videos("lofi (mix)", page=2)

        assert result.page == 2
        assert result.num_pages == 50
        [item] = result.items
        assert item.title_plain == "lofi mix"
        assert item.duration_sec == 3723
        assert item.cover_url == "https://i1.hdslb.com/x.jpg"
        query = transport.calls_to(SEARCH_TYPE_API_URL)[0].query
        assert query["keyword"] == "lofi mix"
        assert query["search_type"] == "video"
        assert signature_matches(query)

    @pytest.mark.parametrize(
        "payload,expected",
        [
            ({"code": 0, "data": 1}, True),
            ({"code": 0, "data": 0}, False),
            ({"code": -101, "message": "not logged in"}, False),
        ],
    )
    async def test_has_liked_recently(self, client, transport, payload, expected):
        transport.json(HAS_LIKE_API_URL, payload)
        assert await client.has_liked_recently_by_bvid("BV1xx") is expected

    async def test_has_liked_by_avid(self, client, transport):
        transport.route(
            HAS_LIKE_API_URL,
            lambda call: TransportResponse(
                200, json.dumps({"code": 0, "data": int(call.query["aid"] == "7")}).encode()
            ),
        )
        assert await client.has_liked_recently_by_avid(7)
        assert not await client.has_liked_recently_by_avid(8)
