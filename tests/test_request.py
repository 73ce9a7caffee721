from urllib.parse import quote

import pytest

from cgihttpd.request import (
    BadRequest,
    HttpError,
    Method,
    NotImplementedMethod,
    file_extension,
    local_path,
    parse_request,
    url_decode,
)


@pytest.mark.parametrize("text", ["/index.html", "/a b/c&d=e", "/~user/x.cgi", "/100%done"])
def test_url_decode_round_trip(text):
    assert url_decode(quote(text, safe="")) == text


def test_url_decode_plus_is_space():
    assert url_decode("a+b") == "a b"


def test_url_decode_drops_truncated_escape():
    result = url_decode("ab%4")
    assert "%" not in result
    assert result.startswith("ab")


def test_url_decode_plain_text_unchanged():
    assert url_decode("/plain/path.txt") == "/plain/path.txt"


def test_parse_get_with_query_and_host():
    request = parse_request(
        ["GET /index.html?a=1 HTTP/1.1\r\n", "Host: example.com\r\n"]
    )
    assert request.method is Method.GET
    assert request.filename == "/index.html"
    assert request.query == "a=1"
    assert request.http_version == "HTTP/1.1"
    assert request.host == "example.com"


def test_parse_post_headers():
    request = parse_request(
        [
            "POST /form.cgi HTTP/1.0\n",
            "Content-Length: 42\n",
            "Content-Type: application/x-www-form-urlencoded\n",
            "Cookie: session=token\n",
            "User-Agent: tester\n",
            "Referer: http://example.com/\n",
        ]
    )
    assert request.method is Method.POST
    assert request.http_version == "HTTP/1.0"
    assert request.content_length == 42
    assert request.content_type == "application/x-www-form-urlencoded"
    assert request.cookie == "session=token"
    assert request.user_agent == "tester"
    assert request.referer == "http://example.com/"
    assert request.query is None
    assert request.host is None


def test_parse_head():
    request = parse_request(["HEAD /x.png HTTP/1.1\r\n"])
    assert request.method is Method.HEAD
    assert request.filename == "/x.png"
    assert request.content_length == 0


def test_empty_query_kept():
    request = parse_request(["GET /a? HTTP/1.1\r\n"])
    assert request.query == ""
    assert request.filename == "/a"


@pytest.mark.parametrize(
    "lines",
    [
        [],
        ["DELETE / HTTP/1.1\r\n"],
        ["GETX / HTTP/1.1\r\n"],
        ["PUT / HTTP/1.1\r\n"],
    ],
)
def test_unsupported_methods(lines):
    with pytest.raises(NotImplementedMethod) as info:
        parse_request(lines)
    assert info.value.status == "501 Not Implemented"


@pytest.mark.parametrize(
    "lines, message",
    [
        (["GET /index.html\r\n"], "Bad request: No HTTP version supplied."),
        (["GET  HTTP/1.1\r\n"], "Bad request: No filename."),
        (["Host: example.com\r\n"], "Bad request: First line was not a request."),
        (
            ["GET / HTTP/1.1\r\n", "garbage\r\n"],
            "Bad request: A header line was missing colon.",
        ),
        (["GET /it's HTTP/1.1\r\n"], "Bad request: No filename provided."),
        (["GET /a?x y HTTP/1.1\r\n"], "Bad request: No filename provided."),
    ],
)
def test_bad_requests(lines, message):
    with pytest.raises(BadRequest) as info:
        parse_request(lines)
    assert info.value.message == message
    assert info.value.status == "400 Bad Request"
    assert isinstance(info.value, HttpError)


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("/a/b.tar.gz", ".gz"),
        ("/index.html", ".html"),
        ("/.hidden", None),
        ("/readme", None),
        ("/", None),
    ],
)
def test_file_extension(filename, expected):
    assert file_extension(filename) == expected


def test_local_path_joins_root():
    assert local_path("/index.html", "www") == "www" + "/index.html"


def test_local_path_plus_kept_without_percent():
    assert local_path("/a+b", "www") == "www/a+b"


def test_local_path_decodes_when_escaped():
    name = "/dir name/file.txt"
    assert local_path(quote(name), "www") == "www" + name


@pytest.mark.parametrize("filename", ["/../etc/passwd", "/a/..", "/%2e%2e/x", "/a/%2E%2E"])
def test_local_path_rejects_traversal(filename):
    with pytest.raises(BadRequest):
        local_path(filename, "www")