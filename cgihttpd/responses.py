"""Building the bytes of the server's HTTP responses."""

from __future__ import annotations

import os

VERSION_STRING = "klange/0.5"

_CONTENT_TYPES = {
    ".htm": "text/html",
    ".html": "text/html",
    ".css": "text/css",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".gif": "image/gif",
    ".pdf": "application/pdf",
    ".manifest": "text/cache-manifest",
}

_LISTING_HEAD = (
    "<!doctype html><html><head><title>Directory Listing</title></head><body>"
)
_LISTING_TAIL = "</body></html>"


def _encode(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def generic_response(status: str, message: str) -> bytes:
    """A complete plain-text response with the given status line and message."""
    body = _encode(message)
    head = (
        f"HTTP/1.1 {status}\r\n"
        f"Server: {VERSION_STRING}\r\n"
        "Content-Type: text/plain\r\n"
        f"Content-Length: {len(body)}\r\n"
        "\r\n"
    )
    return _encode(head) + body + b"\r\n"


def content_type_for(extension: str | None) -> str:
    """The MIME type served for a file extension such as '.html'."""
    if extension is None:
        return "text/unknown"
    return _CONTENT_TYPES.get(extension, "text/unknown")


def redirect_response(location: str) -> bytes:
    """A 301 response sending the client to *location* with a trailing slash."""
    return _encode(
        "HTTP/1.1 301 Moved Permanently\r\n"
        f"Server: {VERSION_STRING}\r\n"
        f"Location: {location}/\r\n"
        "Content-Length: 0\r\n\r\n"
    )


def directory_listing(path) -> str:
    """HTML linking every non-directory entry of *path*, in name order."""
    try:
        names = sorted(os.listdir(path))
    except OSError:
        names = []
    links = [
        f'<a href="{name}">{name}</a><br>\n'
        for name in names
        if not os.path.isdir(os.path.join(path, name))
    ]
    return _LISTING_HEAD + "".join(links) + _LISTING_TAIL


def listing_response(html: str) -> bytes:
    """A complete 200 response carrying a directory listing."""
    body = _encode(html)
    head = (
        "HTTP/1.1 200 OK\r\n"
        f"Server: {VERSION_STRING}\r\n"
        "Content-Type: text/html\r\n"
        f"Content-Length: {len(body)}\r\n"
        "\r\n"
    )
    return _encode(head) + body


def file_headers(status: str, extension: str | None, size: int, head: bool) -> bytes:
    """The head of a file response; for HEAD requests no Content-Length is sent."""
    lines = [
        f"HTTP/1.1 {status}\r\n",
        f"Server: {VERSION_STRING}\r\n",
        f"Content-Type: {content_type_for(extension)}\r\n",
    ]
    if not head:
        lines.append(f"Content-Length: {size}\r\n")
    lines.append("\r\n")
    return _encode("".join(lines))


def encode_chunk(data: bytes) -> bytes:
    """One chunk of a chunked body; empty data gives the terminating chunk."""
    if not data:
        return b"\r\n0\r\n\r\n"
    return b"\r\n%X\r\n" % len(data) + data