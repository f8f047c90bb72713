# -*-python-*-
#
# Copyright (C) 1999-2025 The ViewCVS Group. All Rights Reserved.
#
# By using this file, you agree to the terms and conditions set forth in
# the LICENSE.html file which can be found at the top level of the ViewVC
# distribution or at http://viewvc.org/license-1.html.
#
# For more information, visit http://viewvc.org/
#
# -----------------------------------------------------------------------
#
# githttp: hand smart protocol requests to git-http-backend (CGI)
#
# -----------------------------------------------------------------------

import logging
import os
import os.path
import subprocess
import sys
import tempfile
import threading

from grove.common import GroveException, status_line
from grove.sapi import BLOCK_SIZE
from grove.vclib.git import HTTP_BACKEND, git_exec_path

logger = logging.getLogger(__name__)

# CGI meta-variables passed through from the WSGI environment.
_PASSED_VARIABLES = (
    "QUERY_STRING",
    "REQUEST_METHOD",
    "CONTENT_TYPE",
    "CONTENT_LENGTH",
    "REMOTE_ADDR",
    "REMOTE_USER",
    "SERVER_NAME",
    "SERVER_PORT",
    "SERVER_PROTOCOL",
    "HTTP_CONTENT_ENCODING",
    "HTTP_GIT_PROTOCOL",
)


def cgi_environment(server, root_dir, path_info):
    """Return the environment for running git-http-backend on PATH_INFO
    with ROOT_DIR as project root."""

    env = {
        "GIT_PROJECT_ROOT": root_dir,
        "GIT_HTTP_EXPORT_ALL": "1",
        "GATEWAY_INTERFACE": "CGI/1.1",
        "PATH_INFO": path_info,
        "PATH": os.environ.get("PATH", os.defpath),
    }
    for name in _PASSED_VARIABLES:
        value = server.getenv(name)
        if value:
            env[name] = value
    if "HTTP_GIT_PROTOCOL" in env:
        env["GIT_PROTOCOL"] = env["HTTP_GIT_PROTOCOL"]
    return env


def read_cgi_headers(fp):
    """Read the header block of a CGI response from the file FP, up to
    the blank line ending it, and return (status, headers).  STATUS
    defaults to "200 OK".  Return None if FP ends before the blank
    line."""

    status = "200 OK"
    headers = []
    while True:
        line = fp.readline()
        if not line.endswith(b"\n"):
            return None
        line = line.rstrip(b"\r\n")
        if not line:
            return status, headers
        name, _, value = line.decode("latin-1").partition(":")
        name, value = name.strip(), value.strip()
        if not name:
            continue
        if name.lower() == "status":
            status = value
        else:
            headers.append((name, value))


def copy_stream(src, server):
    while True:
        chunk = src.read(BLOCK_SIZE)
        if not chunk:
            break
        server.write(chunk)


def _expire(proc, expired):
    expired.set()
    proc.kill()


def serve_git_request(server, cfg, runner, path_info):
    """Run git-http-backend for the request PATH_INFO and stream its
    response to SERVER.

    The request body is spooled to a temporary file and fed to the
    backend as its standard input; the response body is copied to SERVER
    block by block as the backend produces it."""

    backend = os.path.join(git_exec_path(runner), HTTP_BACKEND)
    env = cgi_environment(server, cfg.general.root_dir, path_info)
    timeout = cfg.utilities.git_timeout

    with tempfile.TemporaryFile() as body, tempfile.TemporaryFile() as errout:
        server.copy_body(body)
        body.seek(0)
        try:
            proc = subprocess.Popen(
                [backend],
                stdin=body,
                stdout=subprocess.PIPE,
                stderr=errout,
                env=env,
                close_fds=(sys.platform != "win32"),
            )
        except OSError as e:
            raise GroveException(f"could not run {HTTP_BACKEND}: {e}", status_line(500))

        expired = threading.Event()
        timer = None
        if timeout:
            timer = threading.Timer(timeout, _expire, (proc, expired))
            timer.daemon = True
            timer.start()
        try:
            response = read_cgi_headers(proc.stdout)
            if response is None:
                proc.wait()
                if expired.is_set():
                    raise GroveException(
                        f"{HTTP_BACKEND} timed out after {timeout} seconds", status_line(504)
                    )
                if proc.returncode:
                    raise GroveException(
                        f"{HTTP_BACKEND} exit with code {proc.returncode}", status_line(500)
                    )
                raise GroveException(f"malformed response from {HTTP_BACKEND}", status_line(502))

            status, headers = response
            content_type = "application/octet-stream"
            for name, value in headers:
                if name.lower() == "content-type":
                    content_type = value
                else:
                    server.add_header(name, value)
            server.start_response(content_type, status)
            copy_stream(proc.stdout, server)
        finally:
            if timer is not None:
                timer.cancel()
            proc.stdout.close()
            proc.wait()
            errout.seek(0)
            message = errout.read().decode("utf-8", "replace").strip()
            if message:
                logger.warning("%s: %s", HTTP_BACKEND, message)
        if expired.is_set():
            logger.error("%s timed out after %d seconds, response truncated", HTTP_BACKEND, timeout)
