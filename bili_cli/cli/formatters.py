"""
Functions for formatting and displaying data in the console using Rich.
"""

import json
from pathlib import Path
from typing import Any, Iterable

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from bili_cli.models.folder import FavFolder, FavResourceItem
from bili_cli.models.playinfo import PlayInfo, StreamDescriptor, bandwidth_to_kbps
from bili_cli.models.video import SearchVideoPage, VideoBasicInfo, VideoPage
from bili_cli.utils.formatting import format_bitrate, format_duration

console = Console()

_QUALITY_TAG_STYLES = {None: "white", "dolby": "magenta", "hires": "cyan"}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "TransportError": [
            "• A network connection issue occurred or the API rejected the request.",
            "• HTTP 412 usually means the request was flagged; wait and retry.",
            "• Run the command with -vv for detailed logs.",
        ],
        "DescriptorInvalidError": [
            "• The API did not return WBI key descriptors.",
            "• The signing scheme may have changed; check for an update.",
        ],
        "ResponseFormatError": [
            "• The API returned something other than JSON.",
            "• The endpoint may be temporarily unavailable.",
        ],
        "ConfigurationError": [
            "• Check the values in the configuration file.",
            "• Run `bili-cli init --force` to recreate it.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, ensure_ascii=False, default=str))


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding cookie values."""
    content = ""
    for key, value in config_data.items():
        if key == "cookies":
            value = ", ".join(f"{name}=[hidden]" for name in value) or "(anonymous)"
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            Text(content.strip()),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_play_info(info: PlayInfo) -> None:
    """Displays the summary and every track of a playurl response."""
    status = "[green]OK[/green]" if info.ok else f"[red]code {info.code}[/red]"
    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column(style="bold cyan")
    summary.add_column()
    summary.add_row("Status:", f"{status} {escape(info.message)}")
    summary.add_row("Quality:", str(info.quality) if info.quality is not None else "-")
    summary.add_row("Format:", info.format or "-")
    if info.length_ms is not None:
        summary.add_row("Length:", format_duration(info.length_ms / 1000))
    summary.add_row(
        "Accepted:",
        ", ".join(
            f"{q} {escape(d)}" for q, d in zip(info.accept_quality, info.accept_description)
        )
        or "-",
    )
    console.print(Panel(summary, title="[bold]Play Info[/bold]", border_style="cyan"))

    if info.durl:
        table = Table(title="Progressive (MP4)", box=box.ROUNDED)
        table.add_column("#", justify="right")
        table.add_column("Length", justify="right")
        table.add_column("Backups", justify="right")
        table.add_column("URL", overflow="fold")
        for segment in info.durl:
            table.add_row(
                str(segment.order),
                format_duration(segment.length_ms / 1000),
                str(len(segment.backup_urls)),
                segment.url,
            )
        console.print(table)

    if info.dash_video:
        table = Table(title="DASH Video", box=box.ROUNDED)
        for column in ("ID", "Codecs", "Size", "FPS", "Bitrate"):
            table.add_column(column)
        for stream in info.dash_video:
            table.add_row(
                str(stream.id),
                stream.codecs,
                f"{stream.width}x{stream.height}",
                stream.frame_rate,
                format_bitrate(bandwidth_to_kbps(stream.bandwidth)),
            )
        console.print(table)

    print_stream_descriptors(info.to_stream_descriptors())


def print_stream_descriptors(streams: Iterable[StreamDescriptor]) -> None:
    table = Table(title="Audio Streams", box=box.ROUNDED)
    table.add_column("ID", justify="right")
    table.add_column("Tag")
    table.add_column("MIME")
    table.add_column("Bitrate", justify="right")
    table.add_column("URL", overflow="fold")
    for stream in streams:
        style = _QUALITY_TAG_STYLES.get(stream.quality_tag, "white")
        table.add_row(
            str(stream.id),
            Text(stream.quality_tag or "-", style=style),
            stream.mime_type,
            format_bitrate(stream.bitrate_kbps),
            stream.url,
        )
    console.print(table)


def print_video_info(info: VideoBasicInfo) -> None:
    grid = Table(show_header=False, box=None, padding=(0, 2))
    grid.add_column(style="bold cyan")
    grid.add_column()
    grid.add_row("Title:", escape(info.title))
    grid.add_row("BVID / AID:", f"{info.bvid} / {info.aid}")
    grid.add_row("Owner:", f"{escape(info.owner_name)} ({info.owner_mid})")
    grid.add_row("Duration:", format_duration(info.duration_sec))
    grid.add_row(
        "Stats:",
        f"{info.stats.view} views, {info.stats.like} likes, "
        f"{info.stats.favorite} favourites",
    )
    console.print(Panel(grid, title="[bold]Video[/bold]", border_style="cyan"))
    print_video_pages(info.pages)


def print_video_pages(pages: Iterable[VideoPage]) -> None:
    table = Table(title="Pages", box=box.ROUNDED)
    table.add_column("Page", justify="right")
    table.add_column("CID", justify="right")
    table.add_column("Part")
    table.add_column("Duration", justify="right")
    for page in pages:
        table.add_row(
            str(page.page), str(page.cid), escape(page.part), format_duration(page.duration_sec)
        )
    console.print(table)


def print_search_page(result: SearchVideoPage) -> None:
    table = Table(
        title=f"Search results (page {result.page}/{result.num_pages}, "
        f"{result.num_results} total)",
        box=box.ROUNDED,
    )
    table.add_column("BVID")
    table.add_column("Title")
    table.add_column("Author")
    table.add_column("Duration", justify="right")
    table.add_column("Plays", justify="right")
    for item in result.items:
        table.add_row(
            item.bvid,
            escape(item.title_plain),
            escape(item.author),
            format_duration(item.duration_sec),
            str(item.play) if item.play is not None else "-",
        )
    console.print(table)


def print_folders(folders: Iterable[FavFolder]) -> None:
    table = Table(title="Favourite Folders", box=box.ROUNDED)
    table.add_column("Media ID", justify="right")
    table.add_column("Title")
    table.add_column("Items", justify="right")
    for folder in folders:
        table.add_row(str(folder.media_id), escape(folder.title), str(folder.count))
    console.print(table)


def print_folder_items(items: Iterable[FavResourceItem], title: str) -> None:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("BVID")
    table.add_column("Title")
    table.add_column("Uploader")
    table.add_column("Duration", justify="right")
    for index, item in enumerate(items, start=1):
        table.add_row(
            str(index),
            item.bvid or str(item.id),
            escape(item.title),
            escape(item.upper_name),
            format_duration(item.duration_sec),
        )
    console.print(table)
