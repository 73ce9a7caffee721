"""Listing a directory's visible entries, folders first."""

from __future__ import annotations

import os
import sys

MAX_ENTRIES = 1024


def is_hidden(name: str) -> bool:
    """Whether *name* is a hidden entry (starts with a dot)."""
    return name.startswith(".")


def list_directory(path=".") -> tuple[list[str], list[str]]:
    """The visible folder names and file names in *path*, each capped at MAX_ENTRIES.

    Raises OSError if the directory cannot be opened; entries that cannot be
    examined are reported on stderr and skipped.
    """
    folders: list[str] = []
    files: list[str] = []
    with os.scandir(path) as entries:
        for entry in entries:
            if is_hidden(entry.name):
                continue
            try:
                is_dir = entry.is_dir()
                entry.stat()
            except OSError as exc:
                print(f"stat: {exc.strerror}", file=sys.stderr)
                continue
            target = folders if is_dir else files
            if len(target) < MAX_ENTRIES:
                target.append(entry.name)
    return folders, files


def format_listing(folders, files) -> str:
    """Folders as '<name>' lines followed by file names, one per line."""
    lines = [f"<{name}>\n" for name in folders]
    lines.extend(f"{name}\n" for name in files)
    return "".join(lines)


def main(argv=None) -> int:
    """Print the listing of a directory (the current one by default)."""
    args = sys.argv[1:] if argv is None else list(argv)
    path = args[0] if args else "."
    try:
        folders, files = list_directory(path)
    except OSError as exc:
        print(f"opendir: {exc.strerror}", file=sys.stderr)
        return 1
    sys.stdout.write(format_listing(folders, files))
    return 0


if __name__ == "__main__":
    sys.exit(main())