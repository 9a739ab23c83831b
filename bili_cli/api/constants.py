API_BASE_URL = "https://api.bilibili.com"

PLAY_URL_API_URL = f"{API_BASE_URL}/x/player/wbi/playurl"
NAV_API_URL = f"{API_BASE_URL}/x/web-interface/nav"
FINGERPRINT_API_URL = f"{API_BASE_URL}/x/frontend/finger/spi"
WEB_TICKET_API_URL = (
    f"{API_BASE_URL}/bapis/bilibili.api.ticket.v1.Ticket/GenWebTicket"
)
VIEW_API_URL = f"{API_BASE_URL}/x/web-interface/wbi/view"
SEARCH_TYPE_API_URL = f"{API_BASE_URL}/x/web-interface/wbi/search/type"
HAS_LIKE_API_URL = f"{API_BASE_URL}/x/web-interface/archive/has/like"
FAV_FOLDER_CREATED_LIST_API_URL = f"{API_BASE_URL}/x/v3/fav/folder/created/list-all"
FAV_FOLDER_INFO_API_URL = f"{API_BASE_URL}/x/v3/fav/folder/info"
FAV_RESOURCE_LIST_API_URL = f"{API_BASE_URL}/x/v3/fav/resource/list"
PAGE_LIST_API_URL = f"{API_BASE_URL}/x/player/pagelist"

REFERER = "https://www.bilibili.com"
DEFAULT_WEB_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)
FINGERPRINT_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 13_2_3 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/13.0.3 "
    "Mobile/15E148 Safari/604.1 Edg/114.0.0.0"
)
WEB_TICKET_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64; rv:109.0) Gecko/20100101 Firefox/115.0"
)

# Character permutation applied to img_key + sub_key to build the mixin key
MIXIN_KEY_ENC_TAB = (
    46, 47, 18, 2, 53, 8, 23, 32, 15, 50, 10, 31, 58, 3, 45, 35,
    27, 43, 5, 49, 33, 9, 42, 19, 29, 28, 14, 39, 12, 38, 41, 13,
    37, 48, 7, 16, 24, 55, 40, 61, 26, 17, 0, 1, 60, 51, 30, 4,
    22, 25, 54, 21, 56, 62, 6, 63, 57, 20, 34, 52, 59, 11, 36, 44,
)  # fmt: skip
MIXIN_KEY_LENGTH = 32

WBI_KEY_TTL = 10 * 60
ANON_IDENTITY_TTL = 60 * 60

WEB_TICKET_HMAC_KEY = "XgwSnGZ1p"
WEB_TICKET_KEY_ID = "ec02"
CSRF_COOKIE_NAME = "bili_jct"

FOLDER_PAGE_SIZE = 20
