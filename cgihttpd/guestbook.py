"""A guestbook CGI program keeping its entries in SQLite, shown five to a page."""

from __future__ import annotations

import os
import re
import sqlite3
import sys
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timedelta
from urllib.parse import parse_qsl

DB_PATH = "guestbook.db"
PAGE_SIZE = 5
NAME_SIZE = 100
MESSAGE_SIZE = 500

_ESCAPES = {"<": "&lt;", ">": "&gt;", "&": "&amp;", '"': "&quot;"}
_INTEGER = re.compile(r"\s*([+-]?\d+)")

_PAGE_HEAD = (
    "<!DOCTYPE html>"
    "<html>"
    "<head>"
    "<meta name='viewport' content='width=device-width, initial-scale=1.0' />"
    "<title>Guestbook</title>"
    "<link rel='stylesheet' href='style.css'>"
    "</head>"
    "<body>"
    "<div class='container'>"
    "<header>"
    "<h1>Guestbook</h1>"
    "</header>"
    "<main>"
    "<section class='post'>"
    "<form method='POST' action='guestbook.cgi'>"
    "<table width='100%'>"
    "<tr><td>Name:</td><td><input style='width:100%' type='text' name='name' maxlength='32'/></td></tr>"
    "<tr><td>Message:</td><td><textarea style='width:100%;height:128px;' name='message' maxlength='1024'></textarea></td></tr>"
    "<tr><td align='right' colspan='2'><input type='submit' value='Sign'/></form></td></tr>"
    "</table>"
    "</form>"
    "</section>"
)

_PAGE_TAIL = (
    "</main>"
    "<footer>"
    "<h4>Since 2022-09-01</h4>"
    "</footer>"
    "</div>"
    "</body></html>"
)


@dataclass
class Entry:
    """One signed guestbook entry; *posted* is the local time it was written, if known."""

    name: str | None
    message: str | None
    posted: str | None = None


def _format_posted(raw: str | None) -> str | None:
    if raw is None:
        return None
    try:
        stamp = datetime.strptime(raw, "%Y-%m-%d %H:%M:%S") + timedelta(hours=8)
    except ValueError:
        return None
    hour = stamp.hour % 12 or 12
    meridiem = "AM" if stamp.hour < 12 else "PM"
    return f"{stamp:%Y-%m-%d} {hour:2d}:{stamp:%M:%S} {meridiem}"


class GuestbookStore:
    """The SQLite table of guestbook entries, created on first use."""

    def __init__(self, path=DB_PATH) -> None:
        self.path = os.fspath(path)
        with self._connect() as db:
            db.execute(
                "CREATE TABLE IF NOT EXISTS entries ("
                "id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, message TEXT, "
                "datetime TEXT DEFAULT CURRENT_TIMESTAMP)"
            )

    def _connect(self):
        return _Connection(self.path)

    def add(self, name: str, message: str) -> None:
        """Store a new entry."""
        with self._connect() as db:
            db.execute("INSERT INTO entries (name, message) VALUES (?, ?)", (name, message))

    def count(self) -> int:
        """The number of stored entries."""
        with self._connect() as db:
            (total,) = db.execute("SELECT COUNT(*) FROM entries").fetchone()
        return total

    def page(self, number: int) -> list[Entry]:
        """The entries on page *number* (from 1), newest first."""
        offset = (number - 1) * PAGE_SIZE
        with self._connect() as db:
            rows = db.execute(
                "SELECT name, message, datetime FROM entries "
                "ORDER BY id DESC LIMIT ? OFFSET ?",
                (PAGE_SIZE, offset),
            ).fetchall()
        return [Entry(name, message, _format_posted(raw)) for name, message, raw in rows]


class _Connection:
    """A connection that commits and closes on leaving its block."""

    def __init__(self, path: str) -> None:
        self._db = sqlite3.connect(path)

    def __enter__(self) -> sqlite3.Connection:
        return self._db

    def __exit__(self, exc_type, exc, tb) -> None:
        with closing(self._db):
            if exc_type is None:
                self._db.commit()


def html_escape(text: str, limit: int) -> str:
    """Escape <, >, & and "; stop once the output comes within 8 bytes of *limit*."""
    out: list[str] = []
    length = 0
    for char in text:
        if length + 8 >= limit:
            break
        piece = _ESCAPES.get(char, char)
        out.append(piece)
        length += len(piece.encode("utf-8"))
    return "".join(out)


def _atoi(text: str) -> int:
    match = _INTEGER.match(text)
    return int(match.group(1)) if match else 0


def parse_form(environ, stdin) -> dict[str, str]:
    """The form fields of a CGI request: the query string for GET, the urlencoded body for POST."""
    method = environ.get("REQUEST_METHOD", "GET").upper()
    if method == "POST":
        content_type = environ.get("CONTENT_TYPE", "").split(";")[0].strip().lower()
        if content_type != "application/x-www-form-urlencoded":
            return {}
        length = _atoi(environ.get("CONTENT_LENGTH", "0"))
        raw = stdin.read(length) if length > 0 else b""
        text = raw.decode("utf-8", "replace")
    else:
        text = environ.get("QUERY_STRING", "")
    fields: dict[str, str] = {}
    for key, value in parse_qsl(text, keep_blank_values=True):
        fields.setdefault(key, value)
    return fields


def _form_string(fields: dict[str, str], name: str, size: int) -> str:
    value = fields.get(name, "").replace("\r", "").replace("\n", "")
    return value[: size - 1]


def _form_integer(fields: dict[str, str], name: str, default: int) -> int:
    value = fields.get(name)
    if not value:
        return default
    stripped = value.lstrip()
    if not stripped or not (stripped[0].isdigit() or stripped[0] in "+-"):
        return default
    return _atoi(value)


def render_page(entries, page: int, total: int) -> str:
    """The guestbook HTML: the signing form, one page of entries and page links."""
    parts = [_PAGE_HEAD, f"<h2>Entries (Page {page})</h2>"]
    for entry in entries:
        parts.extend(
            (
                "<section class='post'>",
                f"<div class='datetime'>{html_escape(entry.posted or '', 256)}</div>",
                "<div class='clear'></div>",
                f"<div class='name'>{html_escape(entry.name or '', 256)}</div>",
                "<hr>",
                f"<p>{html_escape(entry.message or '', 1024)}</p>",
                "</section>",
            )
        )
    page_count = (total + PAGE_SIZE - 1) // PAGE_SIZE
    parts.append("<p>")
    if page > 1:
        parts.append(f"<a href='guestbook.cgi?page={page - 1}'>&lt;Prev</a> ")
    for number in range(1, page_count + 1):
        if number == page:
            parts.append(f" <b>{number}</b> ")
        else:
            parts.append(f" <a href='guestbook.cgi?page={number}'>{number}</a> ")
    if page < page_count:
        parts.append(f" <a href='guestbook.cgi?page={page + 1}'>Next&gt;</a>")
    parts.append("</p>")
    parts.append(_PAGE_TAIL)
    return "".join(parts)


def main(argv=None) -> int:
    """Run as a CGI program; the database path may be given as the first argument."""
    args = sys.argv[1:] if argv is None else list(argv)
    store = GuestbookStore(args[0] if args else DB_PATH)

    fields = parse_form(os.environ, getattr(sys.stdin, "buffer", sys.stdin))
    name = _form_string(fields, "name", NAME_SIZE)
    message = _form_string(fields, "message", MESSAGE_SIZE)
    page = max(_form_integer(fields, "page", 1), 1)

    if message:
        store.add(name, message)

    output = "Content-Type: text/html\r\n\r\n" + render_page(
        store.page(page), page, store.count()
    )
    sys.stdout.flush()
    sys.stdout.buffer.write(output.encode("utf-8"))
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())