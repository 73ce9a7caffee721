"""Parsing of HTTP request heads and mapping of request paths to local files."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass


class Method(enum.Enum):
    """Request methods the server understands."""

    GET = "GET"
    POST = "POST"
    HEAD = "HEAD"


class HttpError(Exception):
    """A request that must be answered with an error status."""

    status = "500 Internal Server Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequest(HttpError):
    """The request was malformed."""

    status = "400 Bad Request"


class NotImplementedMethod(HttpError):
    """The request used a method the server does not support."""

    status = "501 Not Implemented"

    def __init__(
        self,
        message: str = (
            "Not implemented: The request type sent is not understood by the server."
        ),
    ) -> None:
        super().__init__(message)


@dataclass
class Request:
    """The parsed head of one HTTP request."""

    method: Method
    filename: str
    http_version: str
    query: str | None = None
    host: str | None = None
    content_length: int = 0
    content_type: str | None = None
    cookie: str | None = None
    user_agent: str | None = None
    referer: str | None = None


_METHOD_PREFIXES = (
    ("GET ", Method.GET),
    ("POST ", Method.POST),
    ("HEAD ", Method.HEAD),
)

_ATOL = re.compile(r"\s*([+-]?\d+)")


def _atol(text: str) -> int:
    match = _ATOL.match(text)
    return int(match.group(1)) if match else 0


def _hex_value(char: str) -> int:
    if "0" <= char <= "9":
        return ord(char) - ord("0")
    return ord(char.lower()) - ord("a") + 10


def url_decode(text: str) -> str:
    """Decode %XX escapes and '+' in *text*; a '%' without two following characters is dropped."""
    out: list[str] = []
    chars = iter(range(len(text)))
    for pos in chars:
        char = text[pos]
        if char == "%":
            if pos + 2 < len(text):
                value = (_hex_value(text[pos + 1]) << 4 | _hex_value(text[pos + 2])) & 0xFF
                out.append(chr(value))
                next(chars)
                next(chars)
        elif char == "+":
            out.append(" ")
        else:
            out.append(char)
    return "".join(out)


def _strip_line_end(text: str) -> str:
    for terminator in ("\r\n", "\n"):
        cut = text.find(terminator)
        if cut != -1:
            text = text[:cut]
    return text


def _parse_request_line(line: str) -> tuple[Method, str, str, str | None]:
    for prefix, candidate in _METHOD_PREFIXES:
        if line.startswith(prefix):
            method, rest = candidate, line[len(prefix):]
            break
    else:
        raise NotImplementedMethod()

    if not rest or rest[0] in " \r\n":
        raise BadRequest("Bad request: No filename.")

    version_at = rest.find("HTTP/")
    if version_at == -1:
        raise BadRequest("Bad request: No HTTP version supplied.")
    http_version = _strip_line_end(rest[version_at:])
    filename = rest[: version_at - 1] if version_at > 0 else http_version

    query = None
    mark = filename.find("?")
    if mark != -1:
        filename, query = filename[:mark], filename[mark + 1:]
    return method, filename, http_version, query


def parse_request(lines) -> Request:
    """Parse the request line and headers (each line with its line ending) into a Request."""
    request_line = None
    headers: dict[str, str] = {}

    for number, line in enumerate(lines):
        colon = line.find(": ")
        if colon == -1:
            if number > 0:
                raise BadRequest("Bad request: A header line was missing colon.")
            request_line = _parse_request_line(line)
            continue
        if number == 0:
            raise BadRequest("Bad request: First line was not a request.")
        name, value = line[:colon], line[colon + 2:]
        end = value.find("\r")
        if end == -1:
            end = value.find("\n")
        if end != -1:
            value = value[:end]
        headers[name] = value

    if request_line is None:
        raise NotImplementedMethod()

    method, filename, http_version, query = request_line
    if "'" in filename or " " in filename or (query is not None and " " in query):
        raise BadRequest("Bad request: No filename provided.")

    return Request(
        method=method,
        filename=filename,
        http_version=http_version,
        query=query,
        host=headers.get("Host"),
        content_length=_atol(headers["Content-Length"]) if "Content-Length" in headers else 0,
        content_type=headers.get("Content-Type"),
        cookie=headers.get("Cookie"),
        user_agent=headers.get("User-Agent"),
        referer=headers.get("Referer"),
    )


def file_extension(filename: str) -> str | None:
    """Return the text from the last dot of the request path on, or None if it has no extension."""
    dot = filename.rfind(".", 2)
    return filename[dot:] if dot != -1 else None


def local_path(filename: str, root: str) -> str:
    """Join the request path to *root*, URL-decode it and reject parent-directory jumps."""
    path = root + filename
    if "%" in path:
        path = url_decode(path)
    if "/../" in path or path.endswith("/.."):
        raise BadRequest("Bad request")
    return path