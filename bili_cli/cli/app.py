"""
Defines the command-line interface for the application using Typer.
Each command calls one API operation and prints the result, either as a
Rich table or as raw JSON with --json.
"""

import asyncio
import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from rich.logging import RichHandler
from rich.markup import escape

from bili_cli import __version__
from bili_cli.api.client import BiliAPIClient
from bili_cli.models.playinfo import PlayOptions
from bili_cli.storage.config_manager import ConfigManager
from bili_cli.storage.credentials import parse_cookie_string

from .formatters import (
    console,
    print_config,
    print_folder_items,
    print_folders,
    print_json,
    print_play_info,
    print_search_page,
    print_stream_descriptors,
    print_video_info,
    print_video_pages,
)

T = TypeVar("T")

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("bili_cli")

app = typer.Typer(
    name="bili-cli",
    help=(
        "Query the Bilibili web API: resolve play URLs, audio streams, video"
        " metadata and favourite folders."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "bili-cli"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"

_state: dict[str, Any] = {"cookie": None}


def _to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, list):
        return [_to_jsonable(v) for v in value]
    return value


def _run(operation: Callable[[BiliAPIClient], Awaitable[T]]) -> T:
    """Runs one API operation with a client built from the config file."""
    overrides = {}
    if _state["cookie"]:
        overrides["cookies"] = parse_cookie_string(_state["cookie"])
    config = ConfigManager(CONFIG_FILE).load_config(overrides)

    async def _run_async() -> T:
        async with BiliAPIClient.from_config(config) as client:
            return await operation(client)

    return asyncio.run(_run_async())


async def _resolve_cid(client: BiliAPIClient, bvid: str, cid: Optional[int], page: int) -> int:
    if cid is not None:
        return cid
    resolved = await client.resolve_cid(bvid, page)
    log.info(f"Resolved {bvid} page {page} to cid {resolved}")
    return resolved


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    cookie: Optional[str] = typer.Option(
        None,
        "--cookie",
        envvar="BILI_COOKIE",
        help="Login cookies ('SESSDATA=...; bili_jct=...'), overriding the config.",
    ),
):
    """Bilibili API command-line client"""
    if version:
        console.print(f"[bold]bili-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("bili_cli").setLevel(log_level)

    _state["cookie"] = cookie

    if show_config:
        config = ConfigManager(CONFIG_FILE).load_config()
        print_config(
            CONFIG_FILE, config.model_dump(exclude={"config_path"})
        )
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    cookie: str = typer.Argument(
        "",
        help="Login cookie string copied from the browser. Omit to stay anonymous.",
        metavar="[COOKIE]",
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration."
    ),
):
    """Create the configuration file."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    cookies = parse_cookie_string(cookie)
    if cookie and not cookies:
        console.print("[red]✗ No 'name=value' pairs found in the cookie string.[/red]")
        raise typer.Exit(code=1)

    ConfigManager(CONFIG_FILE).save_new_config({"cookie": cookie})
    if cookies:
        console.print(f"[green]✓ Stored {len(cookies)} login cookies.[/green]")
    else:
        console.print("[green]✓ Using the anonymous guest identity.[/green]")
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command()
def playinfo(
    bvid: str = typer.Argument(..., help="Video BV id."),
    cid: Optional[int] = typer.Option(None, "--cid", help="Part cid (default: from --page)."),
    page: int = typer.Option(1, "--page", "-p", help="1-based part number."),
    qn: Optional[int] = typer.Option(None, "--qn", help="Preferred quality tier."),
    platform: str = typer.Option("pc", "--platform", help="pc or html5."),
    fourk: bool = typer.Option(False, "--4k", help="Allow 4K tracks."),
    raw_json: bool = typer.Option(False, "--json", help="Print the raw response."),
):
    """Resolve the play URL descriptors of a video part."""
    options = PlayOptions(qn=qn, platform=platform, fourk=int(fourk))

    async def operation(client: BiliAPIClient):
        resolved_cid = await _resolve_cid(client, bvid, cid, page)
        return await client.get_play_info_by_bvid(bvid, resolved_cid, options)

    info = _run(operation)
    if raw_json:
        print_json(info.raw)
    else:
        print_play_info(info)


@app.command()
def streams(
    bvid: str = typer.Argument(..., help="Video BV id."),
    cid: Optional[int] = typer.Option(None, "--cid", help="Part cid (default: from --page)."),
    page: int = typer.Option(1, "--page", "-p", help="1-based part number."),
    raw_json: bool = typer.Option(False, "--json", help="Print as JSON."),
):
    """List every audio stream (plain, Dolby, Hi-Res) of a video part."""

    async def operation(client: BiliAPIClient):
        resolved_cid = await _resolve_cid(client, bvid, cid, page)
        return await client.get_audio_streams(bvid, resolved_cid)

    descriptors = _run(operation)
    if raw_json:
        print_json(_to_jsonable(descriptors))
    else:
        print_stream_descriptors(descriptors)


@app.command()
def view(
    bvid: str = typer.Argument(..., help="Video BV id."),
    raw_json: bool = typer.Option(False, "--json", help="Print as JSON."),
):
    """Show the basic information of a video."""
    info = _run(lambda client: client.get_video_basic_info_by_bvid(bvid))
    if raw_json:
        print_json(_to_jsonable(info))
    else:
        print_video_info(info)


@app.command()
def pages(
    bvid: str = typer.Argument(..., help="Video BV id."),
    raw_json: bool = typer.Option(False, "--json", help="Print as JSON."),
):
    """List the parts of a video with their cids."""
    page_list = _run(lambda client: client.get_video_page_list(bvid=bvid))
    if raw_json:
        print_json(_to_jsonable(page_list))
    else:
        print_video_pages(page_list)


@app.command()
def search(
    keyword: str = typer.Argument(..., help="Search terms."),
    page: int = typer.Option(1, "--page", "-p", help="1-based result page."),
    order: str = typer.Option(
        "totalrank", "--order", help="totalrank, click, pubdate, dm or stow."
    ),
    raw_json: bool = typer.Option(False, "--json", help="Print as JSON."),
):
    """Search videos."""
    result = _run(lambda client: client.search_videos(keyword, page=page, order=order))
    if raw_json:
        print_json(_to_jsonable(result))
    else:
        print_search_page(result)


@app.command(name="has-like")
def has_like(bvid: str = typer.Argument(..., help="Video BV id.")):
    """Check whether the logged-in user liked a video recently."""
    liked = _run(lambda client: client.has_liked_recently_by_bvid(bvid))
    print_json({"bvid": bvid, "liked_recently": liked})


@app.command()
def favs(
    up_mid: int = typer.Argument(..., help="User mid."),
    raw_json: bool = typer.Option(False, "--json", help="Print as JSON."),
):
    """List the favourite folders created by a user."""
    folders = _run(lambda client: client.get_user_created_fav_folders(up_mid))
    if raw_json:
        print_json(_to_jsonable(folders))
    else:
        print_folders(folders)


@app.command(name="fav-info")
def fav_info(media_id: int = typer.Argument(..., help="Folder media id.")):
    """Show the metadata of a favourite folder."""
    folder = _run(lambda client: client.get_fav_folder_info(media_id))
    print_json(_to_jsonable(folder))


@app.command(name="fav-items")
def fav_items(
    media_id: int = typer.Argument(..., help="Folder media id."),
    page: int = typer.Option(1, "--page", "-p", help="1-based page (ignored with --all)."),
    all_pages: bool = typer.Option(
        False, "--all", "-a", help="Fetch every page concurrently."
    ),
    raw_json: bool = typer.Option(False, "--json", help="Print as JSON."),
):
    """List the contents of a favourite folder."""
    if all_pages:
        items = _run(lambda client: client.get_all_fav_folder_items(media_id))
        title = f"Folder {media_id} ({len(items)} items)"
    else:
        contents = _run(lambda client: client.get_fav_folder_contents(media_id, page=page))
        items = contents.items
        title = f"{escape(contents.info.title)} (page {page}{', more' if contents.has_more else ''})"

    if raw_json:
        print_json(_to_jsonable(items))
    else:
        print_folder_items(items, title)


@app.command(name="wbi-key")
def wbi_key():
    """Derive and print the current WBI mixin key."""
    print_json({"mixin_key": _run(lambda client: client.signer.get_mixin_key())})
