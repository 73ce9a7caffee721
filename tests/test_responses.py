import pytest

from cgihttpd.responses import (
    content_type_for,
    directory_listing,
    encode_chunk,
    file_headers,
    generic_response,
    listing_response,
    redirect_response,
)


def _split(response: bytes):
    head, _, body = response.partition(b"\r\n\r\n")
    status, *header_lines = head.decode().split("\r\n")
    headers = dict(line.split(": ", 1) for line in header_lines)
    return status, headers, body


def test_generic_response_layout():
    message = "The requested file could not be found."
    status, headers, body = _split(generic_response("404 File Not Found", message))
    assert status == "HTTP/1.1 404 File Not Found"
    assert headers["Server"] == "klange/0.5"
    assert headers["Content-Type"] == "text/plain"
    assert int(headers["Content-Length"]) == len(message)
    assert body == message.encode() + b"\r\n"


@pytest.mark.parametrize(
    "extension, expected",
    [
        (".htm", "text/html"),
        (".html", "text/html"),
        (".css", "text/css"),
        (".png", "image/png"),
        (".jpg", "image/jpeg"),
        (".gif", "image/gif"),
        (".pdf", "application/pdf"),
        (".manifest", "text/cache-manifest"),
        (".exe", "text/unknown"),
        (None, "text/unknown"),
    ],
)
def test_content_type_for(extension, expected):
    assert content_type_for(extension) == expected


def test_redirect_response_appends_slash():
    response = redirect_response("/docs")
    assert response.startswith(b"HTTP/1.1 301 Moved Permanently\r\n")
    status, headers, body = _split(response)
    assert headers["Location"] == "/docs" + "/"
    assert headers["Content-Length"] == "0"
    assert body == b""


def test_directory_listing_skips_directories_and_sorts(tmp_path):
    (tmp_path / "b.txt").write_text("b")
    (tmp_path / "a.txt").write_text("a")
    (tmp_path / "subdir").mkdir()
    html = directory_listing(tmp_path)
    assert html.startswith(
        "<!doctype html><html><head><title>Directory Listing</title></head><body>"
    )
    assert html.endswith("</body></html>")
    first = html.index('<a href="a.txt">a.txt</a><br>\n')
    second = html.index('<a href="b.txt">b.txt</a><br>\n')
    assert first < second
    assert "subdir" not in html


def test_directory_listing_missing_directory(tmp_path):
    empty = directory_listing(tmp_path)
    assert directory_listing(tmp_path / "missing") == empty
    assert "<a " not in empty


def test_listing_response_length_matches_body(tmp_path):
    (tmp_path / "page.html").write_text("x")
    html = directory_listing(tmp_path)
    status, headers, body = _split(listing_response(html))
    assert status == "HTTP/1.1 200 OK"
    assert headers["Content-Type"] == "text/html"
    assert int(headers["Content-Length"]) == len(body)
    assert body == html.encode()


def test_file_headers_full():
    response = file_headers("200 OK", ".png", 10, False)
    status, headers, body = _split(response)
    assert status == "HTTP/1.1 200 OK"
    assert headers["Content-Type"] == "image/png"
    assert headers["Content-Length"] == "10"
    assert body == b""
    assert response.endswith(b"\r\n\r\n")


def test_file_headers_head_omits_length():
    status, headers, body = _split(file_headers("200 OK", None, 10, True))
    assert "Content-Length" not in headers
    assert headers["Content-Type"] == "text/unknown"
    assert body == b""


def test_encode_chunk_size_prefix():
    data = b"x" * 255
    chunk = encode_chunk(data)
    assert chunk.startswith(b"\r\n")
    size_text, _, payload = chunk[2:].partition(b"\r\n")
    assert int(size_text, 16) == len(data)
    assert payload == data


def test_encode_chunk_terminator():
    assert encode_chunk(b"") == b"\r\n0\r\n\r\n"