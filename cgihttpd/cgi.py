"""Running CGI programs: default indexes, environment, process pipes and CGI headers."""

from __future__ import annotations

import io
import os
import socket
import stat
import subprocess
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator

from cgihttpd.request import Method, Request
from cgihttpd.responses import VERSION_STRING

CGI_BUFFER = 10240

# Default index files, and whether each must be executable by others to be used.
INDEX_DEFAULTS = (
    ("index.cgi", True),
    ("index.php", True),
    ("index.pl", True),
    ("index.py", True),
    ("index.htm", False),
    ("index.html", False),
)

_EXPIRES_LINE = b"Expires: -1\r\n"


def _warn(message: str) -> None:
    print(f"[warn] {message}", file=sys.stderr)


@dataclass
class CgiContext:
    """The parts of a request that a CGI program sees through its environment."""

    method: Method
    script_name: str
    http_version: str
    query: str | None = None
    host: str | None = None
    content_length: int = 0
    content_type: str | None = None
    cookie: str | None = None
    user_agent: str | None = None
    referer: str | None = None

    @classmethod
    def from_request(cls, request: Request) -> "CgiContext":
        """Take the CGI-relevant fields from a parsed request."""
        return cls(
            method=request.method,
            script_name=request.filename,
            http_version=request.http_version,
            query=request.query,
            host=request.host,
            content_length=request.content_length,
            content_type=request.content_type,
            cookie=request.cookie,
            user_agent=request.user_agent,
            referer=request.referer,
        )


def _executable_by_others(path: str) -> bool | None:
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return None
    return bool(mode & stat.S_IXOTH)


def find_index(directory) -> str | None:
    """The first default index in *directory* whose execute bit matches its kind, or None."""
    directory = os.fspath(directory)
    for name, must_execute in INDEX_DEFAULTS:
        candidate = os.path.join(directory, name)
        executable = _executable_by_others(candidate)
        if executable is not None and executable == must_execute:
            return candidate
    return None


def _reverse_lookup(address: str) -> str | None:
    try:
        return socket.gethostbyaddr(address)[0]
    except (OSError, UnicodeError):
        return None


def build_environment(
    context: CgiContext,
    script_path,
    document_root: str,
    port: int,
    client_address=None,
) -> dict[str, str]:
    """The CGI variables set for running *script_path* on behalf of *context*."""
    directory, name = os.path.split(os.fspath(script_path))
    full_path = os.path.join(os.path.realpath(directory or "."), name)
    host = context.host if context.host is not None else socket.gethostname()

    environ = {
        "SERVER_SOFTWARE": VERSION_STRING,
        "SERVER_NAME": host,
        "HTTP_HOST": host,
        "DOCUMENT_ROOT": document_root,
        "GATEWAY_INTERFACE": "CGI/1.1",
        "SERVER_PROTOCOL": context.http_version,
        "SERVER_PORT": str(port),
        "REQUEST_METHOD": context.method.value,
        "PATH_TRANSLATED": full_path,
        "SCRIPT_NAME": context.script_name,
        "SCRIPT_FILENAME": full_path,
        "REDIRECT_STATUS": "200",
        "CONTENT_LENGTH": str(context.content_length),
    }
    if context.query is not None:
        environ["QUERY_STRING"] = context.query
    if context.content_type is not None:
        environ["CONTENT_TYPE"] = context.content_type
    if client_address is not None:
        remote_addr = client_address[0]
        remote_host = _reverse_lookup(remote_addr)
        if remote_host is not None:
            environ["REMOTE_HOST"] = remote_host
        environ["REMOTE_ADDR"] = remote_addr
    if context.cookie is not None:
        environ["HTTP_COOKIE"] = context.cookie
    if context.user_agent is not None:
        environ["HTTP_USER_AGENT"] = context.user_agent
    if context.referer is not None:
        environ["HTTP_REFERER"] = context.referer
    return environ


def read_cgi_headers(stream: BinaryIO) -> tuple[list[bytes], bytes]:
    """Read a CGI program's header lines up to the blank line.

    Returns the header lines (with their line endings) and any bytes that were
    read but turned out not to be a header and belong to the body.
    """
    headers: list[bytes] = []
    leftover = b""
    while True:
        line = stream.readline(CGI_BUFFER - 3)
        if not line:
            _warn("Pipe closed during headers.")
            break
        if line in (b"\r\n", b"\n"):
            break
        if b": " not in line and b"\r\n" not in line:
            _warn(f"Garbage trying to read header line from CGI [{len(line)}]")
            leftover = line
            break
        headers.append(line)
    if not headers:
        _warn("CGI script did not give us headers.")
    return headers, leftover


class _PrefixedReader(io.RawIOBase):
    """Raw stream yielding a fixed prefix, then whatever an underlying stream gives."""

    def __init__(self, prefix: bytes, source: BinaryIO | None) -> None:
        super().__init__()
        self._prefix = prefix
        self._source = source

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._prefix:
            count = min(len(buffer), len(self._prefix))
            buffer[:count] = self._prefix[:count]
            self._prefix = self._prefix[count:]
            return count
        if self._source is None:
            return 0
        data = self._source.read1(len(buffer))
        buffer[: len(data)] = data
        return len(data)

    def close(self) -> None:
        if self._source is not None:
            self._source.close()
        super().close()


def _feed(stdin: BinaryIO, body) -> None:
    chunks: Iterable[bytes]
    if body is None:
        chunks = ()
    elif isinstance(body, (bytes, bytearray, memoryview)):
        chunks = (bytes(body),)
    else:
        chunks = body
    try:
        for chunk in chunks:
            stdin.write(chunk)
    except BrokenPipeError:
        pass
    try:
        stdin.close()
    except BrokenPipeError:
        pass


@contextmanager
def run_cgi(script_path, environ: dict[str, str], body) -> Iterator[BinaryIO]:
    """Run a CGI program in its own directory and yield its output stream.

    *body* (bytes, an iterable of bytes, or None) is sent to the program's
    standard input, which is then closed. The output begins with an
    ``Expires: -1`` header line ahead of what the program writes.
    """
    directory, name = os.path.split(os.fspath(script_path))
    try:
        process = subprocess.Popen(
            [os.path.join(".", name)],
            cwd=directory or ".",
            env={**os.environ, **environ},
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
        )
    except OSError:
        _warn(
            f"Failed to execute CGI script: {os.path.join(os.path.realpath(directory or '.'), name)}"
            f"?{environ.get('QUERY_STRING')}."
        )
        with io.BufferedReader(_PrefixedReader(_EXPIRES_LINE, None)) as stream:
            yield stream
        return

    stream = io.BufferedReader(_PrefixedReader(_EXPIRES_LINE, process.stdout))
    try:
        _feed(process.stdin, body)
        yield stream
    finally:
        stream.close()
        process.wait()