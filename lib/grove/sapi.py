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
# generic server api - currently supports wsgi
#
# -----------------------------------------------------------------------

import gzip
from urllib.parse import parse_qs

# Size of the blocks request and response bodies are copied in.
BLOCK_SIZE = 64 * 1024


# Simple HTML string escaping.  Note that we always escape the
# double-quote character -- grove shouldn't ever need to preserve
# that character as-is, and sometimes needs to embed escaped values
# into HTML attributes.
def escape(s):
    s = str(s)
    s = s.replace("&", "&amp;")
    s = s.replace(">", "&gt;")
    s = s.replace("<", "&lt;")
    s = s.replace('"', "&quot;")
    return s


class ServerUsageError(Exception):
    """The caller attempted to start transmitting an HTTP response after
    that ship had already sailed."""

    pass


class ServerImplementationError(Exception):
    """There's a problem with the implementation of the Server."""

    pass


class Server:
    def __init__(self):
        """Initialized the server.  Child classes should extend this."""
        self._response_started = False

    def response_started(self):
        """Return True iff a response has been started."""
        return self._response_started

    def start_response(self, content_type, status):
        """Start a response.  Child classes should extend this method."""
        if self._response_started:
            raise ServerUsageError("Server response has already been started")
        self._response_started = True

    def escape(self, s):
        """HTML-escape the Unicode string S and return the result."""
        return escape(s)

    def add_header(self, name, value):
        """Add an HTTP header to the set of those that will be included in
        the response.  Child classes should override this method."""
        raise ServerImplementationError()

    def getenv(self, name, default_value=None):
        """Return the value of environment variable NAME, or DEFAULT_VALUE
        if NAME isn't found in the server environment.  Child classes
        should override this method."""
        raise ServerImplementationError()

    def params(self):
        """Return a dictionary of query parameters parsed from the
        server's request URL.  Child classes should override this method."""
        raise ServerImplementationError()

    def copy_body(self, fp):
        """Copy the request body, block by block, to the file FP and
        return the number of bytes copied.  Child classes should override
        this method."""
        raise ServerImplementationError()

    def write(self, s):
        """Write S (a Unicode string, sent UTF-8 encoded, or bytes) to the
        server output stream.  Child classes should override this method."""
        raise ServerImplementationError()


class WsgiServer(Server):
    def __init__(self, environ, write_response):
        Server.__init__(self)
        self._environ = environ
        self._write_response = write_response
        self._headers = []
        self._wsgi_write = None

    def add_header(self, name, value):
        self._headers.append((name, value))

    def start_response(self, content_type="text/html; charset=UTF-8", status=None):
        Server.start_response(self, content_type, status)
        if not status:
            status = "200 OK"
        self._headers.insert(
            0,
            ("Content-Type", content_type),
        )
        self._wsgi_write = self._write_response(status, self._headers)

    def getenv(self, name, default_value=None):
        value = self._environ.get(name, default_value)
        # PEP 3333 demands that PATH_INFO et al carry only latin-1
        # strings, so multibyte path names arrive munged, with each
        # byte being a character.  Reinterpret path-carrying CGI
        # environment variables as UTF-8 instead of as latin-1.
        if name in ["PATH_INFO", "SCRIPT_NAME"] and value is not None:
            value = value.encode("latin-1").decode("utf-8", errors="surrogateescape")
        return value

    def params(self):
        qs = self._environ.get("QUERY_STRING", "")
        return parse_qs(qs, encoding="utf-8") if qs else {}

    def copy_body(self, fp):
        try:
            remaining = int(self._environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            remaining = 0
        copied = 0
        while remaining > 0:
            chunk = self._environ["wsgi.input"].read(min(remaining, BLOCK_SIZE))
            if not chunk:
                break
            fp.write(chunk)
            copied += len(chunk)
            remaining -= len(chunk)
        return copied

    def write(self, s):
        if isinstance(s, str):
            s = s.encode("utf-8", "surrogateescape")
        self._wsgi_write(s)


# Content types worth compressing; other responses are streamed as is.
_compressible_types = ("text/", "application/javascript", "application/json", "image/svg+xml")


def _compressible(headers):
    content_type = ""
    for name, value in headers:
        if name.lower() == "content-encoding":
            return False
        if name.lower() == "content-type":
            content_type = value
    return content_type.startswith(_compressible_types)


def gzip_middleware(application):
    """Wrap WSGI APPLICATION so that its text responses are
    gzip-compressed for clients which accept that encoding.  Any other
    response (git packs, binary files) passes through unbuffered."""

    def gzip_application(environ, start_response):
        if "gzip" not in environ.get("HTTP_ACCEPT_ENCODING", ""):
            return application(environ, start_response)

        response = {}
        chunks = []

        def capture_response(status, headers, exc_info=None):
            if not _compressible(headers):
                response["passed"] = True
                return start_response(status, headers, exc_info)
            response["status"] = status
            response["headers"] = headers
            return chunks.append

        result = application(environ, capture_response)
        if response.get("passed"):
            return result
        try:
            for chunk in result:
                chunks.append(chunk)
        finally:
            if hasattr(result, "close"):
                result.close()
        if response.get("passed"):
            return chunks

        body = gzip.compress(b"".join(chunks))
        headers = [(name, value) for name, value in response["headers"] if name.lower() != "content-length"]
        headers.extend(
            [
                ("Content-Encoding", "gzip"),
                ("Content-Length", str(len(body))),
                ("Vary", "Accept-Encoding"),
            ]
        )
        start_response(response["status"], headers)
        return [body]

    return gzip_application
