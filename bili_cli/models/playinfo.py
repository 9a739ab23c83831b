"""
Playback descriptor models and the parser that normalizes the playurl payload.

The playurl endpoint mixes progressive MP4 segments (`durl`), DASH video/audio
tracks, Dolby audio and an optional Hi-Res FLAC track, with field names that
alternate between snake_case and camelCase. Everything here is tolerant of
missing or malformed fields; only an empty stream URL causes an entry to be
dropped.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bili_cli.utils.json_fields import (
    as_object,
    get_bool,
    get_int,
    get_list,
    get_object,
    get_optional_int,
    get_str,
    int_list,
    str_list,
)

# fnval bits: DASH must be set to get split tracks, Dolby to get dolby.audio
FNVAL_DASH = 1 << 4
FNVAL_DOLBY = 1 << 8
DEFAULT_FNVAL = FNVAL_DASH | FNVAL_DOLBY

QUALITY_TAG_DOLBY = "dolby"
QUALITY_TAG_HIRES = "hires"

DEFAULT_AUDIO_MIME = "audio/mp4"
DEFAULT_DOLBY_MIME = "audio/eac3"
DEFAULT_FLAC_MIME = "audio/flac"


@dataclass
class PlayOptions:
    """Query options for the playurl endpoint. Unset optional fields are not sent."""

    qn: Optional[int] = None
    fnval: int = DEFAULT_FNVAL
    fnver: int = 0
    fourk: int = 0
    # "pc" requires a Referer; "html5" only serves MP4.
    platform: str = "pc"
    high_quality: Optional[int] = None
    try_look: Optional[int] = None
    session: Optional[str] = None
    gaia_source: Optional[str] = None
    is_gaia_avoided: Optional[bool] = None

    def to_params(self) -> Dict[str, str]:
        params = {
            "fnval": str(self.fnval),
            "fnver": str(self.fnver),
            "fourk": str(self.fourk),
            "otype": "json",
            "platform": self.platform,
        }
        if self.qn is not None:
            params["qn"] = str(self.qn)
        if self.high_quality is not None:
            params["high_quality"] = str(self.high_quality)
        if self.try_look is not None:
            params["try_look"] = str(self.try_look)
        if self.session is not None:
            params["session"] = self.session
        if self.gaia_source is not None:
            params["gaia_source"] = self.gaia_source
        if self.is_gaia_avoided is not None:
            params["isGaiaAvoided"] = "true" if self.is_gaia_avoided else "false"
        return params


@dataclass(frozen=True)
class ProgressiveStream:
    order: int
    length_ms: int
    size_bytes: int
    url: str
    backup_urls: List[str]


@dataclass(frozen=True)
class DashStream:
    id: int
    base_url: str
    backup_urls: List[str]
    bandwidth: int
    mime_type: str
    codecs: str
    width: int
    height: int
    frame_rate: str
    codec_id: int


@dataclass(frozen=True)
class DolbyAudio:
    type: int
    audios: List[DashStream]


@dataclass(frozen=True)
class FlacAudio:
    display: bool
    audio: Optional[DashStream]


@dataclass(frozen=True)
class StreamDescriptor:
    """A playable audio track in normalized form."""

    id: int
    mime_type: str
    bitrate_kbps: int
    quality_tag: Optional[str]
    url: str


def bandwidth_to_kbps(bandwidth: int) -> int:
    """Converts bytes/s to kbit/s, clamping malformed values to 0."""
    return max(0, bandwidth * 8 // 1000)


def _descriptor(
    stream: DashStream, default_mime: str, quality_tag: Optional[str]
) -> StreamDescriptor:
    return StreamDescriptor(
        id=stream.id,
        mime_type=stream.mime_type if stream.mime_type.strip() else default_mime,
        bitrate_kbps=bandwidth_to_kbps(stream.bandwidth),
        quality_tag=quality_tag,
        url=stream.base_url,
    )


@dataclass
class PlayInfo:
    """
    Parsed playurl response. A non-zero `code` is an upstream failure reported
    as data; the remaining fields are still populated from whatever was sent.
    """

    code: int
    message: str
    quality: Optional[int]
    format: Optional[str]
    length_ms: Optional[int]
    accept_description: List[str]
    accept_quality: List[int]
    durl: List[ProgressiveStream]
    dash_video: List[DashStream]
    dash_audio: List[DashStream]
    dolby: Optional[DolbyAudio] = None
    flac: Optional[FlacAudio] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def ok(self) -> bool:
        return self.code == 0

    def to_stream_descriptors(self) -> List[StreamDescriptor]:
        """
        Merges plain DASH audio, Dolby audio and the Hi-Res track, in that order.
        """
        descriptors = [
            _descriptor(a, DEFAULT_AUDIO_MIME, None) for a in self.dash_audio
        ]
        if self.dolby:
            descriptors.extend(
                _descriptor(a, DEFAULT_DOLBY_MIME, QUALITY_TAG_DOLBY)
                for a in self.dolby.audios
            )
        if self.flac and self.flac.audio:
            descriptors.append(
                _descriptor(self.flac.audio, DEFAULT_FLAC_MIME, QUALITY_TAG_HIRES)
            )
        return descriptors


def parse_progressive_streams(items: List[Any]) -> List[ProgressiveStream]:
    streams = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        streams.append(
            ProgressiveStream(
                order=get_int(item, "order", default=index + 1),
                length_ms=get_int(item, "length"),
                size_bytes=get_int(item, "size"),
                url=get_str(item, "url"),
                backup_urls=str_list(get_list(item, "backup_url", "backupUrl")),
            )
        )
    return streams


def parse_dash_item(item: Dict[str, Any]) -> Optional[DashStream]:
    """Parses one DASH track; returns None when it carries no base URL."""
    base_url = get_str(item, "baseUrl", "base_url")
    if not base_url:
        return None
    return DashStream(
        id=get_int(item, "id", default=-1),
        base_url=base_url,
        backup_urls=str_list(get_list(item, "backupUrl", "backup_url")),
        bandwidth=get_int(item, "bandwidth"),
        mime_type=get_str(item, "mimeType", "mime_type"),
        codecs=get_str(item, "codecs"),
        width=get_int(item, "width"),
        height=get_int(item, "height"),
        frame_rate=get_str(item, "frameRate", "frame_rate"),
        codec_id=get_int(item, "codecid"),
    )


def parse_dash_array(items: List[Any]) -> List[DashStream]:
    streams = []
    for item in items:
        if isinstance(item, dict) and (stream := parse_dash_item(item)):
            streams.append(stream)
    return streams


def parse_play_info(root: Dict[str, Any]) -> PlayInfo:
    """Builds a PlayInfo from a decoded playurl response."""
    data = as_object(root.get("data"))
    dash = get_object(data, "dash") or {}

    dolby = None
    if (dolby_obj := get_object(dash, "dolby")) is not None:
        dolby = DolbyAudio(
            type=get_int(dolby_obj, "type"),
            audios=parse_dash_array(get_list(dolby_obj, "audio")),
        )

    flac = None
    if (flac_obj := get_object(dash, "flac")) is not None:
        audio_obj = get_object(flac_obj, "audio")
        flac = FlacAudio(
            display=get_bool(flac_obj, "display"),
            audio=parse_dash_item(audio_obj) if audio_obj else None,
        )

    return PlayInfo(
        code=get_int(root, "code", default=-1),
        message=get_str(root, "message"),
        quality=get_optional_int(data, "quality"),
        format=get_str(data, "format") or None,
        length_ms=get_optional_int(data, "timelength"),
        accept_description=str_list(get_list(data, "accept_description")),
        accept_quality=int_list(get_list(data, "accept_quality")),
        durl=parse_progressive_streams(get_list(data, "durl")),
        dash_video=parse_dash_array(get_list(dash, "video")),
        dash_audio=parse_dash_array(get_list(dash, "audio")),
        dolby=dolby,
        flac=flac,
        raw=root,
    )
