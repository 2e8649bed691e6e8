"""Google Drive URL handling and archive download"""

import re
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import parse_qs, urlparse

import click
import gdown
from rich.console import Console

from n8ndeploy.errors import DownloadError

console = Console()

URL_EXAMPLE = "https://drive.google.com/file/d/FILE_ID/view"

# Drive IDs are URL-safe base64-ish tokens; anything shorter is more likely a typo.
_BARE_ID = re.compile(r"^[A-Za-z0-9_-]{20,}$")


def extract_file_id(url: str) -> Optional[str]:
    """Pull the Drive file ID out of a sharing URL.

    Recognizes ``/file/d/<ID>/view``-style paths, ``?id=<ID>`` query
    strings and a bare ID pasted on its own. Returns None when nothing
    matches.
    """
    url = (url or "").strip()
    if not url:
        return None

    if _BARE_ID.match(url):
        return url

    parsed = urlparse(url)
    segments = parsed.path.split("/")

    for i, segment in enumerate(segments):
        if segment == "d" and i + 1 < len(segments) and segments[i + 1]:
            return segments[i + 1]
        if segment.startswith("id="):
            value = segment[len("id="):].split("&", 1)[0]
            if value:
                return value

    ids = parse_qs(parsed.query).get("id")
    if ids and ids[0]:
        return ids[0]

    return None


def read_url_file(path: Path) -> Optional[str]:
    """First line of the URL file, or None if it is missing or blank"""
    if not path.is_file():
        return None

    with open(path) as f:
        first = f.readline().strip()

    return first or None


def prompt_url(text: str) -> str:
    return click.prompt(text, default="", show_default=False)


def resolve_url(
    mode: str = "auto",
    url_file: Path = Path("gdrive-cmds"),
    prompt: Callable[[str], str] = prompt_url,
) -> str:
    """Get the archive URL from the URL file (auto) or the user (manual)"""
    url = None

    if mode == "auto":
        console.print("[dim]--- Using 'auto' mode ---[/dim]")
        if not url_file.exists():
            console.print(f"[yellow]⚠ File '{url_file}' not found. Falling back to manual input.[/yellow]")
            mode = "manual"
        else:
            url = read_url_file(url_file)
            if url is None:
                console.print(f"[yellow]⚠ '{url_file}' is empty. Falling back to manual input.[/yellow]")
                mode = "manual"
            else:
                console.print(f"[green]✓[/green] Found URL in {url_file}")

    if mode == "manual":
        console.print("[dim]--- Using 'manual' mode ---[/dim]")
        url = prompt(f"Paste the Google Drive URL for the n8n data zip (e.g. {URL_EXAMPLE})")

    url = (url or "").strip()
    if not url:
        raise DownloadError("Google Drive URL cannot be empty")

    return url


def resolve_file_id(
    url: Optional[str] = None,
    mode: str = "auto",
    url_file: Path = Path("gdrive-cmds"),
    prompt: Callable[[str], str] = prompt_url,
) -> str:
    """Resolve the archive URL and extract its file ID"""
    console.print("\n[bold cyan]Google Drive Data URL[/bold cyan]")

    if not url:
        url = resolve_url(mode, url_file, prompt)

    file_id = extract_file_id(url)
    if not file_id:
        raise DownloadError(
            f"Could not extract a file ID from the URL: '{url}'. "
            f"Expected something like {URL_EXAMPLE}"
        )

    console.print(f"[green]✓[/green] Extracted file ID: {file_id}")
    return file_id


def download_archive(file_id: str, output: Path) -> Path:
    """Download a Drive file by ID to ``output``"""
    if not file_id:
        raise DownloadError("Google Drive file ID is not set")

    console.print(f"[bold]Downloading Google Drive file (ID: {file_id})[/bold]")

    try:
        result = gdown.download(
            id=file_id,
            output=str(output),
            quiet=False,
            use_cookies=False,
            fuzzy=True,
        )
    except Exception as e:
        raise DownloadError(f"Download failed: {e}") from e

    if result is None or not output.is_file() or output.stat().st_size == 0:
        raise DownloadError("Download failed or file is empty")

    return output
