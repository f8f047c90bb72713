import gzip
import io

import pytest

from grove import sapi

from conftest import run_app


def hello_app(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain"), ("Content-Length", "6")])
    return [b"hello\n"]


def test_escape():
    assert sapi.escape('<a href="x">&</a>') == "&lt;a href=&quot;x&quot;&gt;&amp;&lt;/a&gt;"


def test_gzip_when_accepted():
    app = sapi.gzip_middleware(hello_app)
    status, headers, body = run_app(app, "/", HTTP_ACCEPT_ENCODING="gzip")
    assert status == "200 OK"
    assert headers["Content-Encoding"] == "gzip"
    assert headers["Vary"] == "Accept-Encoding"
    assert headers["Content-Length"] == str(len(body))
    assert gzip.decompress(body) == b"hello\n"


def test_no_gzip_unless_accepted():
    app = sapi.gzip_middleware(hello_app)
    _, headers, body = run_app(app, "/")
    assert "Content-Encoding" not in headers
    assert body == b"hello\n"


def test_already_encoded_response_passes_through():
    def encoded_app(environ, start_response):
        start_response("200 OK", [("Content-Encoding", "identity")])
        return [b"raw"]

    _, headers, body = run_app(sapi.gzip_middleware(encoded_app), "/", HTTP_ACCEPT_ENCODING="gzip")
    assert headers["Content-Encoding"] == "identity"
    assert body == b"raw"


def test_binary_response_is_not_buffered():
    events = []

    def pack_app(environ, start_response):
        write = start_response("200 OK", [("Content-Type", "application/x-git-upload-pack-result")])
        write(b"PACK")
        events.append("after first write")
        write(b"more")
        return []

    environ = {"HTTP_ACCEPT_ENCODING": "gzip"}
    written = []

    def start_response(status, headers, exc_info=None):
        def write(data):
            events.append(data)
            written.append(data)

        return write

    result = sapi.gzip_middleware(pack_app)(environ, start_response)
    assert list(result) == []
    assert events == [b"PACK", "after first write", b"more"]
    assert written == [b"PACK", b"more"]


def make_server(**environ):
    responses = []
    written = []

    def start_response(status, headers):
        responses.append((status, list(headers)))
        return written.append

    return sapi.WsgiServer(environ, start_response), responses, written


def test_wsgi_server_response():
    server, responses, written = make_server()
    server.add_header("X-Test", "1")
    server.start_response()
    server.write("café")
    server.write(b"\x00")
    assert responses == [("200 OK", [("Content-Type", "text/html; charset=UTF-8"), ("X-Test", "1")])]
    assert written == ["café".encode("utf-8"), b"\x00"]
    assert server.response_started()
    with pytest.raises(sapi.ServerUsageError):
        server.start_response()


def test_wsgi_server_path_info_is_utf8():
    server, _, _ = make_server(PATH_INFO="/cafÃ©")
    assert server.getenv("PATH_INFO") == "/café"
    assert server.getenv("MISSING", "x") == "x"


def test_wsgi_server_params():
    server, _, _ = make_server(QUERY_STRING="ref=v1&ref=v2&x=%2F")
    assert server.params() == {"ref": ["v1", "v2"], "x": ["/"]}
    assert make_server()[0].params() == {}


def test_wsgi_server_copy_body():
    payload = b"x" * (2 * sapi.BLOCK_SIZE + 5)
    server, _, _ = make_server(
        CONTENT_LENGTH=str(len(payload)), **{"wsgi.input": io.BytesIO(payload + b"extra")}
    )
    fp = io.BytesIO()
    assert server.copy_body(fp) == len(payload)
    assert fp.getvalue() == payload


@pytest.mark.parametrize("length", ["", "0", "junk"])
def test_wsgi_server_copy_no_body(length):
    server, _, _ = make_server(CONTENT_LENGTH=length, **{"wsgi.input": io.BytesIO(b"ignored")})
    fp = io.BytesIO()
    assert server.copy_body(fp) == 0
    assert fp.getvalue() == b""


def test_short_body():
    server, _, _ = make_server(CONTENT_LENGTH="10", **{"wsgi.input": io.BytesIO(b"abc")})
    fp = io.BytesIO()
    assert server.copy_body(fp) == 3
