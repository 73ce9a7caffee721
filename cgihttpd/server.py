"""A threaded HTTP/1.1 server for flat files, directory listings and CGI programs."""

from __future__ import annotations

import os
import re
import shutil
import signal
import socket
import stat
import sys
import threading
from functools import partial
from typing import BinaryIO, Iterator

from cgihttpd.cgi import (
    CgiContext,
    build_environment,
    find_index,
    read_cgi_headers,
    run_cgi,
)
from cgihttpd.request import (
    BadRequest,
    HttpError,
    Method,
    Request,
    file_extension,
    local_path,
    parse_request,
)
from cgihttpd.responses import (
    VERSION_STRING,
    directory_listing,
    encode_chunk,
    file_headers,
    generic_response,
    listing_response,
    redirect_response,
)

PORT = 80
PAGES_DIRECTORY = "www"
HEADER_SIZE = 10240
CGI_POST = 10240
CGI_BUFFER = 10240
FLAT_BUFFER = 10240
BACKLOG = 50
_ACCEPT_POLL = 0.5

_ATOI = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    match = _ATOI.match(text)
    return int(match.group(1)) if match else 0


def _read_head(reader: BinaryIO) -> list[str] | None:
    """Read request lines up to the blank line; None when the client has gone."""
    lines: list[str] = []
    while True:
        raw = reader.readline(HEADER_SIZE - 3)
        if not raw:
            return None
        if raw in (b"\r\n", b"\n"):
            return lines
        if b"\n" not in raw:
            raise BadRequest("Bad request: Request line was too long.")
        lines.append(raw.decode("utf-8", "surrogateescape"))


def _request_body(reader: BinaryIO, length: int) -> Iterator[bytes]:
    remaining = length
    while remaining > 0:
        data = reader.read(min(remaining, CGI_POST))
        if not data:
            break
        remaining -= len(data)
        yield data


class CgiServer:
    """Serves the files under *root*, running executable files as CGI programs."""

    def __init__(self, root: str = PAGES_DIRECTORY, port: int = PORT) -> None:
        self.root = os.fspath(root)
        self.port = port
        self.ready = threading.Event()
        self._stopped = threading.Event()

    def serve_forever(self) -> None:
        """Bind, listen and handle each connection on its own thread until shut down."""
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind(("", self.port))
            listener.listen(BACKLOG)
        except (OSError, OverflowError):
            listener.close()
            raise
        listener.settimeout(_ACCEPT_POLL)
        self.port = listener.getsockname()[1]
        print(f"[info] Listening on port {self.port}.")
        print(f"[info] Serving out of '{self.root}'.")
        print(f"[info] Server version string is {VERSION_STRING}.")
        print("[extn] CGI support is enabled.")
        print("[extn] Default indexes are enabled.")
        self.ready.set()
        try:
            while not self._stopped.is_set():
                try:
                    connection, address = listener.accept()
                except socket.timeout:
                    continue
                except OSError:
                    if self._stopped.is_set():
                        break
                    raise
                threading.Thread(
                    target=self.handle_connection,
                    args=(connection, address),
                    daemon=True,
                ).start()
        finally:
            listener.close()

    def shutdown(self) -> None:
        """Stop accepting connections; serve_forever returns shortly after."""
        self._stopped.set()

    def handle_connection(self, sock: socket.socket, address) -> None:
        """Answer requests on *sock* until the client disconnects or an error ends it."""
        reader = sock.makefile("rb")
        writer = sock.makefile("wb")
        try:
            while True:
                keep_alive = self._handle_one(reader, writer, address)
                writer.flush()
                if not keep_alive:
                    break
        except OSError:
            pass
        finally:
            for stream in (writer, reader):
                try:
                    stream.close()
                except OSError:
                    pass
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            sock.close()

    def _handle_one(self, reader: BinaryIO, writer: BinaryIO, address) -> bool:
        try:
            lines = _read_head(reader)
            if lines is None:
                return False
            request = parse_request(lines)
            path = local_path(request.filename, self.root)
        except HttpError as exc:
            writer.write(generic_response(exc.status, exc.message))
            return False

        extension = file_extension(request.filename)
        if os.path.isdir(path):
            if not path.endswith("/"):
                writer.write(redirect_response(request.filename))
                return True
            index = find_index(path)
            if index is None:
                writer.write(listing_response(directory_listing(path)))
                return True
            path = index
            dot = path.rfind(".", 1)
            extension = path[dot:] if dot != -1 else path
        return self._serve_file(request, path, extension, reader, writer, address)

    def _serve_file(
        self,
        request: Request,
        path: str,
        extension: str | None,
        reader: BinaryIO,
        writer: BinaryIO,
        address,
    ) -> bool:
        try:
            content = open(path, "rb")
        except OSError:
            try:
                content = open(os.path.join(self.root, "404.htm"), "rb")
            except OSError:
                writer.write(
                    generic_response(
                        "404 File Not Found", "The requested file could not be found."
                    )
                )
                return True
            status, extension = "404 File Not Found", ".htm"
        else:
            if os.fstat(content.fileno()).st_mode & stat.S_IXOTH:
                content.close()
                return self._serve_cgi(request, path, reader, writer, address)
            status = "200 OK"

        with content:
            size = os.fstat(content.fileno()).st_size
            head = request.method is Method.HEAD
            writer.write(file_headers(status, extension, size, head))
            if head:
                return True
            shutil.copyfileobj(content, writer, FLAT_BUFFER - 1)
            writer.write(b"\r\n")
        return True

    def _serve_cgi(
        self,
        request: Request,
        path: str,
        reader: BinaryIO,
        writer: BinaryIO,
        address,
    ) -> bool:
        environ = build_environment(
            CgiContext.from_request(request),
            path,
            os.path.abspath(self.root),
            self.port,
            address,
        )
        body = _request_body(reader, request.content_length)
        with run_cgi(path, environ, body) as output:
            for _ in body:
                pass
            headers, leftover = read_cgi_headers(output)
            writer.write(f"HTTP/1.1 200 OK\r\nServer: {VERSION_STRING}\r\n".encode())
            writer.writelines(headers)
            if request.method is Method.HEAD:
                writer.write(b"\r\n")
                return True
            chunked = request.http_version == "HTTP/1.1"
            if chunked:
                writer.write(b"Transfer-Encoding: chunked\r\n")
            else:
                writer.write(b"Connection: close\r\n\r\n")
            if leftover:
                print("[warn] Trying to dump remaining content.", file=sys.stderr)
                writer.write(encode_chunk(leftover))
            for data in iter(partial(output.read, CGI_BUFFER - 1), b""):
                writer.write(encode_chunk(data) if chunked else data)
            if chunked:
                writer.write(encode_chunk(b""))
        return chunked


def main(argv=None) -> int:
    """Serve the pages directory on the port given as the first argument (80 by default)."""
    args = sys.argv[1:] if argv is None else list(argv)
    port = _atoi(args[0]) if args else PORT
    server = CgiServer(PAGES_DIRECTORY, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\n[info] Shutting down.")
        server.shutdown()
        return int(signal.SIGINT)
    except (OSError, OverflowError):
        print(f"Failed to bind socket to port {port}!", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())