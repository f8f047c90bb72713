import io
import os
import sys

import pytest

from grove import githttp, sapi
from grove.common import GroveException
from grove.vclib.git import CommandRunner


def make_server(**environ):
    responses = []
    written = []

    def start_response(status, headers):
        responses.append((status, list(headers)))
        return written.append

    return sapi.WsgiServer(environ, start_response), responses, written


class ExecPathRunner(CommandRunner):
    """Report EXEC_DIR as git's exec path."""

    def __init__(self, exec_dir):
        self.exec_dir = exec_dir

    def run(self, cwd, args):
        assert list(args) == ["--exec-path"]
        return os.fsencode(self.exec_dir) + b"\n"


@pytest.fixture
def backend(tmp_path):
    """Return a function installing a shell script as git-http-backend,
    and the runner locating it."""

    exec_dir = tmp_path / "git-core"
    exec_dir.mkdir()

    def install(script):
        path = exec_dir / "git-http-backend"
        path.write_text("#!/bin/sh\n" + script)
        path.chmod(0o755)
        return ExecPathRunner(str(exec_dir))

    return install


requires_sh = pytest.mark.skipif(sys.platform == "win32", reason="needs /bin/sh")


def test_cgi_environment():
    server, _, _ = make_server(
        REQUEST_METHOD="POST",
        QUERY_STRING="",
        CONTENT_TYPE="application/x-git-upload-pack-request",
        CONTENT_LENGTH="42",
        HTTP_GIT_PROTOCOL="version=2",
        HTTP_COOKIE="secret",
    )
    env = githttp.cgi_environment(server, "/srv/git", "/a/.git/git-upload-pack")
    assert env["GIT_PROJECT_ROOT"] == "/srv/git"
    assert env["GIT_HTTP_EXPORT_ALL"] == "1"
    assert env["PATH_INFO"] == "/a/.git/git-upload-pack"
    assert env["REQUEST_METHOD"] == "POST"
    assert env["CONTENT_LENGTH"] == "42"
    assert env["GIT_PROTOCOL"] == "version=2"
    assert "QUERY_STRING" not in env
    assert "HTTP_COOKIE" not in env


def test_read_cgi_headers():
    fp = io.BytesIO(b"Status: 404 Not Found\r\nContent-Type: text/plain\r\nExpires: never\r\n\r\nnope\r\n")
    status, headers = githttp.read_cgi_headers(fp)
    assert status == "404 Not Found"
    assert headers == [("Content-Type", "text/plain"), ("Expires", "never")]
    assert fp.read() == b"nope\r\n"


def test_read_cgi_headers_default_status():
    fp = io.BytesIO(b"Content-Type: x\n\n\x00\x01")
    assert githttp.read_cgi_headers(fp) == ("200 OK", [("Content-Type", "x")])
    assert fp.read() == b"\x00\x01"


@pytest.mark.parametrize("output", [b"", b"no header end", b"Content-Type: x\r\n"])
def test_read_cgi_headers_unterminated(output):
    assert githttp.read_cgi_headers(io.BytesIO(output)) is None


@requires_sh
def test_request_body_reaches_backend(cfg, backend):
    runner = backend("printf 'Status: 201 Created\\r\\nContent-Type: text/x-echo\\r\\nX-Seen: yes\\r\\n\\r\\n'\nexec cat\n")
    payload = b"0032want deadbeef\n" * 10
    server, responses, written = make_server(
        REQUEST_METHOD="POST",
        CONTENT_LENGTH=str(len(payload)),
        **{"wsgi.input": io.BytesIO(payload + b"trailing garbage")},
    )
    githttp.serve_git_request(server, cfg, runner, "/a/.git/git-upload-pack")
    assert responses == [("201 Created", [("Content-Type", "text/x-echo"), ("X-Seen", "yes")])]
    assert b"".join(written) == payload


@requires_sh
def test_large_response_is_streamed_in_blocks(cfg, backend):
    runner = backend("printf 'Content-Type: application/x-git-upload-pack-result\\n\\n'\nexec cat\n")
    payload = os.urandom(3 * sapi.BLOCK_SIZE + 17)
    server, _, written = make_server(CONTENT_LENGTH=str(len(payload)), **{"wsgi.input": io.BytesIO(payload)})
    githttp.serve_git_request(server, cfg, runner, "/a/.git/git-upload-pack")
    assert len(written) > 1
    assert all(len(chunk) <= sapi.BLOCK_SIZE for chunk in written)
    assert b"".join(written) == payload


@requires_sh
def test_backend_failure(cfg, backend):
    runner = backend("echo 'fatal: broken' >&2\nexit 3\n")
    server, responses, _ = make_server()
    with pytest.raises(GroveException) as excinfo:
        githttp.serve_git_request(server, cfg, runner, "/a/.git/info/refs")
    assert excinfo.value.status == "500 Internal Server Error"
    assert responses == []


@requires_sh
def test_malformed_backend_output(cfg, backend):
    runner = backend("printf 'no header end'\n")
    server, _, _ = make_server()
    with pytest.raises(GroveException) as excinfo:
        githttp.serve_git_request(server, cfg, runner, "/a/.git/info/refs")
    assert excinfo.value.status == "502 Bad Gateway"


@requires_sh
def test_backend_timeout(cfg, backend):
    runner = backend("exec sleep 30\n")
    cfg.utilities.git_timeout = 1
    server, _, _ = make_server()
    with pytest.raises(GroveException) as excinfo:
        githttp.serve_git_request(server, cfg, runner, "/a/.git/info/refs")
    assert excinfo.value.status == "504 Gateway Timeout"
