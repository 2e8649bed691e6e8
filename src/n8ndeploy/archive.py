"""Unpacking the n8n data archive into the host data directory"""

import math
import shutil
import zipfile
from pathlib import Path

from rich.console import Console

console = Console()


def human_size(num_bytes: int) -> str:
    """Format a byte count the way ``du -h`` does.

    Sizes round up; one decimal is shown only below 10 of a unit.
    """
    if num_bytes < 1024:
        return f"{num_bytes}B"

    size = float(num_bytes)
    for unit in ("K", "M", "G", "T"):
        size /= 1024
        if size < 10:
            tenths = math.ceil(size * 10)
            if tenths < 100:
                return f"{tenths / 10:.1f}{unit}"
        rounded = math.ceil(size)
        if rounded < 1024 or unit == "T":
            return f"{rounded}{unit}"
    return f"{math.ceil(size)}T"


def extract_archive(zip_path: Path, dest: Path) -> bool:
    """Extract ``zip_path`` into ``dest``, overwriting existing files.

    Returns False (after a warning) if the archive is unreadable; the
    caller carries on with cleanup in that case.
    """
    dest.mkdir(parents=True, exist_ok=True)
    console.print(f"[bold]Unzipping {zip_path} to {dest}[/bold]")

    try:
        with zipfile.ZipFile(zip_path, "r") as zf:
            zf.extractall(dest)
    except (zipfile.BadZipFile, OSError) as e:
        console.print(f"[yellow]⚠ Unzip failed, the downloaded file might be corrupted: {e}[/yellow]")
        return False

    console.print("[green]✓[/green] File extraction complete")
    return True


def flatten_nested(dest: Path) -> bool:
    """Lift ``dest/<dest.name>/*`` up into ``dest``.

    Archives zipped from the parent directory unpack as
    ``n8n-data/n8n-data/...``; the container expects the data at the root.
    """
    nested = dest / dest.resolve().name
    if not nested.is_dir() or not any(nested.iterdir()):
        return False

    console.print("[yellow]⚠ Nested directory detected, fixing data path...[/yellow]")

    # Entries may share the nested directory's own name.
    staging = dest / f".{nested.name}.flatten"
    nested.rename(staging)

    for entry in list(staging.iterdir()):
        target = dest / entry.name
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        shutil.move(str(entry), str(target))

    staging.rmdir()
    console.print(f"[green]✓[/green] Data moved to the correct root path: {dest}")
    return True


def unpack_data(zip_path: Path, dest: Path) -> bool:
    """Extract, fix nesting and always remove the archive"""
    try:
        ok = extract_archive(zip_path, dest)
        if ok:
            flatten_nested(dest)
    finally:
        console.print(f"[dim]Cleaning up {zip_path}[/dim]")
        zip_path.unlink(missing_ok=True)

    return ok
