"""
Console entry point for bili-cli.
Runs the Typer app and turns library errors into a readable panel.
"""

import asyncio
import logging
import os
import sys

import typer

from bili_cli.cli.app import app
from bili_cli.cli.formatters import console, format_error_with_suggestions
from bili_cli.exceptions import BiliCliError, TransportError

log = logging.getLogger("bili_cli")


def _error_context(error: BiliCliError) -> dict | None:
    if isinstance(error, TransportError) and error.status is not None:
        return {"status": error.status}
    return None


def main() -> None:
    if os.name == "nt":
        # Titles and uploader names are mostly CJK
        for stream in (sys.stdout, sys.stderr):
            try:
                stream.reconfigure(encoding="utf-8")
            except (TypeError, AttributeError):
                pass

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)
    except BiliCliError as e:
        console.print(format_error_with_suggestions(e, _error_context(e)))
        log.debug("Request failed:", exc_info=True)
        sys.exit(1)
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
