"""
Async client for the Bilibili web API: WBI-signed playback resolution,
video metadata, search and favourite folders.
"""

import json
import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional

from bili_cli.exceptions import ResponseFormatError, TransportError
from bili_cli.models.folder import (
    FavFolder,
    FavResourceItem,
    FavResourcePage,
    parse_created_folders,
    parse_folder_info,
    parse_resource_page,
)
from bili_cli.models.playinfo import PlayInfo, PlayOptions, StreamDescriptor, parse_play_info
from bili_cli.models.video import (
    SearchVideoPage,
    VideoBasicInfo,
    VideoPage,
    VideoStats,
    parse_page_list,
    parse_search_page,
    parse_video_basic_info,
)
from bili_cli.storage.credentials import CredentialStore, StaticCredentialStore
from bili_cli.utils.page_aggregator import PageAggregator, page_count

from .auth import AnonymousIdentity, CredentialResolver, to_cookie_header
from .constants import (
    ANON_IDENTITY_TTL,
    DEFAULT_WEB_USER_AGENT,
    FAV_FOLDER_CREATED_LIST_API_URL,
    FAV_FOLDER_INFO_API_URL,
    FAV_RESOURCE_LIST_API_URL,
    FOLDER_PAGE_SIZE,
    HAS_LIKE_API_URL,
    PAGE_LIST_API_URL,
    PLAY_URL_API_URL,
    REFERER,
    SEARCH_TYPE_API_URL,
    VIEW_API_URL,
    WBI_KEY_TTL,
)
from .transport import AiohttpTransport, HttpTransport
from .wbi import WbiSigner, encode_query

if TYPE_CHECKING:
    from bili_cli.models.config import ClientConfig

log = logging.getLogger(__name__)


class BiliAPIClient:
    """
    Async client for the Bilibili web API.

    Features:
    - WBI signing with a cached, self-refreshing mixin key
    - Anonymous guest cookies when no login cookies are stored
    - Tolerant parsing of playback descriptors (MP4, DASH, Dolby, Hi-Res)
    - Concurrent page fan-out for favourite folders
    """

    def __init__(
        self,
        credential_store: Optional[CredentialStore] = None,
        transport: Optional[HttpTransport] = None,
        user_agent: str = DEFAULT_WEB_USER_AGENT,
        max_concurrent_pages: Optional[int] = None,
        wbi_key_ttl: float = WBI_KEY_TTL,
        anon_identity_ttl: float = ANON_IDENTITY_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initializes the API client.

        Args:
            credential_store: Source of login cookies. Defaults to an empty store,
            which makes every request use the anonymous identity.
            transport: HTTP transport. Defaults to a pooled aiohttp transport.
            user_agent: User-Agent sent with regular API requests.
            max_concurrent_pages: Page requests in flight when listing folders.
            None (the default) requests every page at once.
            wbi_key_ttl: Lifetime of the WBI mixin key in seconds.
            anon_identity_ttl: Lifetime of the anonymous identity in seconds.
            clock: Monotonic time source for both caches.
        """
        self.user_agent = user_agent
        self.max_concurrent_pages = max_concurrent_pages
        self._transport: HttpTransport = transport or AiohttpTransport()
        self._anonymous = AnonymousIdentity(self, ttl=anon_identity_ttl, clock=clock)
        self._credentials = CredentialResolver(
            credential_store or StaticCredentialStore(), self._anonymous
        )
        self._signer = WbiSigner(self, ttl=wbi_key_ttl, clock=clock)

    @classmethod
    def from_config(cls, config: "ClientConfig") -> "BiliAPIClient":
        """Builds a client with an aiohttp transport tuned by `config`."""
        transport = AiohttpTransport(
            max_connections=config.max_connections,
            timeout_total=config.timeout_total,
            timeout_connect=config.timeout_connect,
        )
        return cls(
            credential_store=StaticCredentialStore(config.cookies),
            transport=transport,
            user_agent=config.user_agent or DEFAULT_WEB_USER_AGENT,
            max_concurrent_pages=config.max_concurrent_pages,
        )

    @property
    def signer(self) -> WbiSigner:
        """Provides access to the WBI signing helper."""
        return self._signer

    @property
    def credentials(self) -> CredentialResolver:
        return self._credentials

    @property
    def anonymous_identity(self) -> AnonymousIdentity:
        return self._anonymous

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> "BiliAPIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # Transport

    async def execute(
        self,
        method: str,
        url: str,
        *,
        user_agent: Optional[str] = None,
        with_referer: bool = True,
        with_cookies: bool = True,
        body: Optional[bytes] = None,
    ) -> str:
        """
        Sends a request and returns the response body as text.

        Raises:
            TransportError: On network failure or any non-2xx status.
        """
        headers = {"User-Agent": user_agent or self.user_agent}
        if with_referer:
            headers["Referer"] = REFERER
        if with_cookies:
            cookies = await self._credentials.get_effective_credentials()
            if cookie_header := to_cookie_header(cookies):
                headers["Cookie"] = cookie_header

        response = await self._transport.request(method, url, headers, body)
        if not response.ok:
            raise TransportError.from_response(url, response.status, response.text())
        return response.text()

    async def execute_get_text(self, url: str) -> str:
        return await self.execute("GET", url)

    @staticmethod
    def _decode_json(text: str, url: str) -> Dict[str, Any]:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise ResponseFormatError(
                f"Response from {url.split('?')[0]} is not valid JSON: {e}"
            ) from e
        if not isinstance(payload, dict):
            raise ResponseFormatError(
                f"Response from {url.split('?')[0]} is not a JSON object."
            )
        return payload

    async def get_json(
        self, base_url: str, params: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """Unsigned GET for endpoints outside the WBI scheme."""
        url = base_url
        if params:
            url = f"{base_url}?{encode_query({k: str(v) for k, v in params.items()})}"
        return self._decode_json(await self.execute_get_text(url), url)

    async def get_json_wbi(
        self, base_url: str, params: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """WBI-signed GET."""
        url = await self._signer.sign_url(base_url, params)
        return self._decode_json(await self.execute_get_text(url), url)

    # Playback

    async def get_play_info_by_bvid(
        self, bvid: str, cid: int, options: Optional[PlayOptions] = None
    ) -> PlayInfo:
        params = {"bvid": bvid, "cid": str(cid)}
        return await self._request_play_url(params, options or PlayOptions())

    async def get_play_info_by_avid(
        self, avid: int, cid: int, options: Optional[PlayOptions] = None
    ) -> PlayInfo:
        params = {"avid": str(avid), "cid": str(cid)}
        return await self._request_play_url(params, options or PlayOptions())

    async def get_audio_streams(
        self, bvid: str, cid: int, options: Optional[PlayOptions] = None
    ) -> List[StreamDescriptor]:
        """Resolves every available audio track of a video part."""
        info = await self.get_play_info_by_bvid(bvid, cid, options)
        return info.to_stream_descriptors()

    async def _request_play_url(
        self, params: Dict[str, str], options: PlayOptions
    ) -> PlayInfo:
        params.update(options.to_params())
        root = await self.get_json_wbi(PLAY_URL_API_URL, params)
        info = parse_play_info(root)
        if info.code != 0:
            log.warning(
                f"Play URL request returned code={info.code}, message={info.message}"
            )
        return info

    # Video metadata

    async def get_video_basic_info_by_bvid(self, bvid: str) -> VideoBasicInfo:
        return parse_video_basic_info(
            await self.get_json_wbi(VIEW_API_URL, {"bvid": bvid})
        )

    async def get_video_basic_info_by_avid(self, avid: int) -> VideoBasicInfo:
        return parse_video_basic_info(
            await self.get_json_wbi(VIEW_API_URL, {"aid": str(avid)})
        )

    async def get_video_stats_by_bvid(self, bvid: str) -> VideoStats:
        return (await self.get_video_basic_info_by_bvid(bvid)).stats

    async def get_video_stats_by_avid(self, avid: int) -> VideoStats:
        return (await self.get_video_basic_info_by_avid(avid)).stats

    async def get_video_page_list(
        self, bvid: Optional[str] = None, aid: Optional[int] = None
    ) -> List[VideoPage]:
        if bvid:
            params = {"bvid": bvid}
        elif aid is not None:
            params = {"aid": str(aid)}
        else:
            raise ValueError("Either bvid or aid is required.")
        return parse_page_list(await self.get_json(PAGE_LIST_API_URL, params))

    async def resolve_cid(self, bvid: str, page: int = 1) -> int:
        """
        Returns the cid of part `page`, or of the first part if there is no
        such page.
        """
        pages = await self.get_video_page_list(bvid=bvid)
        target = next((p for p in pages if p.page == page), None) or (
            pages[0] if pages else None
        )
        if target is None:
            raise ValueError(f"Video {bvid} has no page {page}.")
        return target.cid

    # Search

    async def search_videos(
        self,
        keyword: str,
        page: int = 1,
        order: str = "totalrank",
        duration: int = 0,
        tids: int = 0,
    ) -> SearchVideoPage:
        """
        Searches videos.

        Args:
            keyword: Search terms.
            page: 1-based result page.
            order: totalrank, click, pubdate, dm or stow.
            duration: 0 any, 1 <10m, 2 10-30m, 3 30-60m, 4 >60m.
            tids: Category id, 0 for all.
        """
        params = {
            "search_type": "video",
            "keyword": keyword,
            "order": order,
            "duration": str(duration),
            "tids": str(tids),
            "page": str(page),
        }
        return parse_search_page(
            await self.get_json_wbi(SEARCH_TYPE_API_URL, params), page
        )

    # Likes

    async def has_liked_recently_by_bvid(self, bvid: str) -> bool:
        return await self._query_has_like({"bvid": bvid})

    async def has_liked_recently_by_avid(self, avid: int) -> bool:
        return await self._query_has_like({"aid": str(avid)})

    async def _query_has_like(self, params: Dict[str, str]) -> bool:
        payload = await self.get_json(HAS_LIKE_API_URL, params)
        return payload.get("code", -1) == 0 and payload.get("data", 0) == 1

    # Favourite folders

    async def get_user_created_fav_folders(self, up_mid: int) -> List[FavFolder]:
        """All folders created by a user (private ones only when logged in as them)."""
        return parse_created_folders(
            await self.get_json(FAV_FOLDER_CREATED_LIST_API_URL, {"up_mid": str(up_mid)})
        )

    async def get_fav_folder_info(self, media_id: int) -> FavFolder:
        return parse_folder_info(
            await self.get_json(FAV_FOLDER_INFO_API_URL, {"media_id": str(media_id)})
        )

    async def get_fav_folder_contents(
        self,
        media_id: int,
        page: int = 1,
        page_size: int = FOLDER_PAGE_SIZE,
        order: str = "mtime",
        keyword: Optional[str] = None,
        tid: Optional[int] = None,
        scope_type: Optional[int] = None,
    ) -> FavResourcePage:
        """
        Fetches one page of a folder.

        Args:
            order: mtime, view or pubtime.
            tid: Restrict to a video category.
            scope_type: 0 searches this folder, 1 all of the user's folders.
        """
        params = {
            "media_id": str(media_id),
            "pn": str(page),
            "ps": str(page_size),
            "order": order,
            "platform": "web",
        }
        if keyword is not None:
            params["keyword"] = keyword
        if tid is not None:
            params["tid"] = str(tid)
        if scope_type is not None:
            params["type"] = str(scope_type)
        return parse_resource_page(await self.get_json(FAV_RESOURCE_LIST_API_URL, params))

    async def get_all_fav_folder_items(self, media_id: int) -> List[FavResourceItem]:
        """
        Lists a whole folder by fetching all of its pages concurrently, at most
        `max_concurrent_pages` at a time when that is set. Pages that fail are
        logged and left empty.
        """
        folder = await self.get_fav_folder_info(media_id)
        if folder.count <= 0:
            return []

        async def fetch_page(page: int) -> List[FavResourceItem]:
            contents = await self.get_fav_folder_contents(
                media_id, page=page, page_size=FOLDER_PAGE_SIZE
            )
            return contents.items

        aggregator = PageAggregator(
            fetch_page,
            max_concurrent=self.max_concurrent_pages,
            label=f"folder {media_id}",
        )
        return await aggregator.fetch_all(page_count(folder.count, FOLDER_PAGE_SIZE))
