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
# grove: browse nested git repositories via a web browser
#
# -----------------------------------------------------------------------

import importlib
import io
import logging
import mimetypes
import os
import os.path
import posixpath
import re
import stat
from urllib.parse import quote

import ezt

from grove import __version__, config, githttp, sapi, vclib
from grove.common import GroveException, TemplateData, _item, status_line
from grove.resolver import (
    GIT_DIR,
    VIEW_BLOB,
    VIEW_RAW,
    VIEW_TREE,
    Outcome,
    is_within,
    split_repository,
)
from grove.vclib.git import GitCommandError, GitCommandRunner, GitRepository

logger = logging.getLogger(__name__)

DEFAULT_REF = "HEAD"

# URL paths served straight from the resource directory.
_resources = {
    "/res/style.css": "style.css",
    "/res/highlight.js": "highlight.js",
    "/favicon.ico": "favicon.png",
}

# Characters git refuses in ref names, except the "~" and "^" revision
# suffixes.  A leading "-" would read as an option, and ".." would turn
# the ref_exists() range into another range.
_re_validate_ref = re.compile(r"^(?!-)(?!.*\.\.)[^\s:?*\[\\]+$")


class Request:
    def __init__(self, server, cfg):
        self.server = server
        self.cfg = cfg

        self.where = server.getenv("PATH_INFO", "") or "/"
        self.script_name = (server.getenv("SCRIPT_NAME", "") or "").rstrip("/")
        self.remote_addr = server.getenv("REMOTE_ADDR", "-")
        self.host = server.getenv("HTTP_HOST") or server.getenv("SERVER_NAME", "localhost")
        self.url_scheme = server.getenv("wsgi.url_scheme", "http")
        self.query_dict = server.params()

        self.authorizer = setup_authorizer(cfg)
        self.runner = GitCommandRunner(cfg.utilities.git, cfg.utilities.git_timeout)
        self.ref = _validate_ref(self.query_dict.get("ref", [DEFAULT_REF])[0])
        self.resolution = None  # PathResolution of the request path
        self.repos = None  # GitRepository, when inside a repository

    def fspath(self, where):
        """Map the URL path WHERE onto the file system below root_dir."""
        return os.path.normpath(os.path.join(self.cfg.general.root_dir, where.lstrip("/")))

    def url(self, fspath):
        """Return the URL path of file system path FSPATH."""
        relpath = os.path.relpath(fspath, self.cfg.general.root_dir)
        if relpath == os.curdir:
            return self.script_name + "/"
        return quote(f"{self.script_name}/{relpath.replace(os.sep, '/')}", errors="surrogateescape")

    def view_url(self, view, path):
        """Return the URL of PATH, in the current repository, shown by VIEW."""
        url = f"{self.url(self.resolution.repository)}/{view}/{quote(path, errors='surrogateescape')}"
        if self.ref != DEFAULT_REF:
            url = f"{url}?ref={quote(self.ref, safe='')}"
        return url

    def run_grove(self):
        if self.where in _resources:
            return view_resource(self, _resources[self.where])

        # git's smart protocol requests always point inside a git dir.
        if ".git/" in self.where:
            return view_git_protocol(self)

        logger.info("View of %r from %s", self.where, self.remote_addr)
        self.resolution = split_repository(
            self.cfg.general.root_dir, self.fspath(self.where), self.authorizer
        )
        if self.resolution.status is not Outcome.OK:
            raise GroveException(
                f"Could not serve {self.where}",
                status_line(self.resolution.status.http_status),
            )

        if not self.resolution.is_repository:
            return view_directory(self)

        self.repos = GitRepository(self.resolution.repository, self.runner)
        view_func = _views[self.resolution.view]
        if not self.repos.ref_exists(self.ref):
            # An unborn HEAD only means that nothing was committed yet.
            if view_func is view_summary and self.ref == DEFAULT_REF:
                return view_summary(self, empty=True)
            raise GroveException(f"Unknown ref '{self.ref}'", status_line(404))
        return view_func(self)


def _validate_ref(ref):
    if not _re_validate_ref.match(ref):
        raise GroveException(f"Invalid ref '{ref}'", status_line(400))
    return ref


def setup_authorizer(cfg):
    """Return the authorizer configured by 'authorizer' in [options], or
    None if no authorizer is configured."""

    authorizer = cfg.options.authorizer
    if not authorizer:
        return None
    try:
        module = importlib.import_module(f"grove.vcauth.{authorizer}")
    except ImportError:
        raise GroveException(f"Invalid authorizer ({authorizer}) specified", status_line(500))
    return module.GroveAuthorizer(cfg.get_authorizer_params())


def get_view_template(cfg, view_name):
    tname = os.path.join(cfg.options.template_dir, view_name + ".ezt")
    return ezt.Template(tname)


def generate_page(request, view_name, data):
    # Render completely before starting the response, so that a template
    # failure can still become an error page.
    fp = io.StringIO()
    get_view_template(request.cfg, view_name).generate(fp, data)
    request.server.start_response()
    request.server.write(fp.getvalue())


def nav_path(request):
    """Return the list of items leading from root_dir to the requested
    path, each with "name" and "href" members."""

    escape = request.server.escape
    items = [_item(name="[root]", href=escape(request.url(request.cfg.general.root_dir)))]
    path = request.cfg.general.root_dir
    target = request.resolution.repository if request.resolution else path
    relpath = os.path.relpath(target, path)
    if relpath != os.curdir:
        for part in relpath.split(os.sep):
            path = os.path.join(path, part)
            items.append(_item(name=escape(part), href=escape(request.url(path))))
    return items


def common_template_data(request):
    return TemplateData(
        {
            "vsn": __version__,
            "where": request.server.escape(request.where),
            "nav_path": nav_path(request),
            "ref": request.server.escape(request.ref),
            "style_href": request.server.escape(request.script_name + "/res/style.css"),
        }
    )


def prep_commits(request, commits):
    escape = request.server.escape
    return [
        _item(
            sha=commit.sha,
            short_sha=commit.sha[:8],
            author=escape(commit.author),
            time=escape(commit.time),
            subject=escape(commit.subject),
            body=escape(commit.body.rstrip("\n")) or None,
            href=escape(f"{request.url(request.resolution.repository)}?ref={commit.sha}"),
        )
        for commit in commits
    ]


def prep_entries(request, names, dirpath):
    """Turn NAMES, as listed by git for directory DIRPATH, into template
    items with "name", "href" and "is_dir" members."""

    escape = request.server.escape
    entries = []
    for name in names:
        is_dir = name.endswith("/")
        name = name.rstrip("/")
        path = posixpath.normpath(posixpath.join(dirpath or ".", name))
        view = VIEW_TREE if is_dir else VIEW_BLOB
        entries.append(
            _item(
                name=escape(name),
                href=escape(request.view_url(view, path)),
                is_dir=ezt.boolean(is_dir),
            )
        )
    return entries


def view_directory(request):
    """Show a plain file system directory holding repositories."""

    path = request.resolution.repository
    try:
        st = os.stat(path)
    except (OSError, ValueError):
        raise GroveException(f"Could not serve {request.where}", status_line(404))
    if not stat.S_ISDIR(st.st_mode):
        raise GroveException(f"Could not serve {request.where}", status_line(403))
    try:
        names = sorted(os.listdir(path))
    except OSError as e:
        raise GroveException(f"Could not list {request.where}: {e.strerror}", status_line(500))

    escape = request.server.escape
    entries = []
    for name in names:
        if name.startswith("."):
            continue
        entry_path = os.path.join(path, name)
        entries.append(
            _item(
                name=escape(name),
                href=escape(request.url(entry_path)),
                is_dir=ezt.boolean(os.path.isdir(entry_path)),
                is_repository=ezt.boolean(os.path.exists(os.path.join(entry_path, GIT_DIR))),
            )
        )

    up_href = None
    if path != request.cfg.general.root_dir:
        up_href = escape(request.url(os.path.dirname(path)))

    data = common_template_data(request)
    data.merge(TemplateData({"entries": entries, "up_href": up_href}))
    generate_page(request, "directory", data)


def view_summary(request, empty=False):
    """Show the front page of a repository."""

    repos = request.repos
    escape = request.server.escape
    repo_url = request.url(request.resolution.repository)
    data = common_template_data(request)
    data.merge(
        TemplateData(
            {
                "name": escape(os.path.basename(request.resolution.repository)),
                "clone_url": escape(f"{request.url_scheme}://{request.host}{repo_url}/{GIT_DIR}"),
                "is_empty": ezt.boolean(empty),
                "branch": None,
                "short_hash": None,
                "total_commits": None,
                "tags": [],
                "entries": [],
                "commits": [],
            }
        )
    )
    if not empty:
        data["branch"] = escape(repos.branch(request.ref))
        data["short_hash"] = repos.short_hash(request.ref)
        data["total_commits"] = str(repos.total_commits())
        data["tags"] = [escape(tag) for tag in repos.tags()]
        data["entries"] = prep_entries(request, repos.list_dir_at(request.ref, ""), "")
        data["commits"] = prep_commits(
            request, repos.commits(request.ref, request.cfg.options.log_limit)
        )
    generate_page(request, "summary", data)


def view_tree(request):
    path = request.resolution.path
    try:
        names = request.repos.list_dir_at(request.ref, path)
    except GitCommandError:
        names = []
    if not names:
        raise GroveException(f"No directory {path} at {request.ref}", status_line(404))

    data = common_template_data(request)
    data.merge(
        TemplateData(
            {
                "path": request.server.escape(path),
                "entries": prep_entries(request, names, path),
            }
        )
    )
    generate_page(request, "tree", data)


def _read_file(request):
    path = request.resolution.path
    try:
        return request.repos.read_file_at(request.ref, path)
    except GitCommandError:
        raise GroveException(f"No file {path} at {request.ref}", status_line(404))


def _is_binary(content):
    return b"\0" in content[:8192]


def view_blob(request):
    """Show a file, as text, along with its history."""

    path = request.resolution.path
    content = _read_file(request)
    is_binary = _is_binary(content)
    data = common_template_data(request)
    data.merge(
        TemplateData(
            {
                "path": request.server.escape(path),
                "raw_href": request.server.escape(request.view_url(VIEW_RAW, path)),
                "is_binary": ezt.boolean(is_binary),
                "contents": None
                if is_binary
                else request.server.escape(content.decode("utf-8", "replace")),
                "commits": prep_commits(
                    request, request.repos.commits(request.ref, request.cfg.options.log_limit, path)
                ),
            }
        )
    )
    generate_page(request, "blob", data)


# Types a browser would run as active content on our origin.
_active_mime_types = frozenset(
    ["text/html", "application/xhtml+xml", "image/svg+xml", "text/xml", "application/xml"]
)


def guess_mime(path, content):
    mime_type = mimetypes.guess_type(path)[0]
    if mime_type in _active_mime_types:
        return "text/plain; charset=UTF-8"
    if mime_type:
        return mime_type
    if _is_binary(content):
        return "application/octet-stream"
    return "text/plain; charset=UTF-8"


def view_raw(request):
    """Send a file's contents unaltered."""

    content = _read_file(request)
    request.server.add_header("X-Content-Type-Options", "nosniff")
    request.server.start_response(guess_mime(request.resolution.path, content), None)
    request.server.write(content)


def view_git_protocol(request):
    where = request.where
    logger.info("Git request to %r from %s", where, request.remote_addr)

    gitpath = request.fspath(where[: where.index(".git/") + len(".git")])
    if not is_within(request.cfg.general.root_dir, gitpath):
        raise GroveException(f"Could not serve {where}", status_line(404))
    try:
        st = os.stat(gitpath)
    except (OSError, ValueError) as e:
        logger.info("Git request of %r from %s produced error: %s", where, request.remote_addr, e)
        raise GroveException(f"Could not serve {where}", status_line(404))
    if request.authorizer is not None and not request.authorizer.check_gitdir_access(gitpath, st):
        logger.info("Git request from %s denied: %r", request.remote_addr, where)
        raise GroveException(f"Could not serve {where}", status_line(403))

    githttp.serve_git_request(request.server, request.cfg, request.runner, where)


def view_resource(request, name):
    path = os.path.join(request.cfg.options.resource_dir, name)
    try:
        with open(path, "rb") as fp:
            content = fp.read()
    except OSError:
        raise GroveException(f"Could not serve {request.where}", status_line(404))
    request.server.start_response(mimetypes.guess_type(name)[0] or "application/octet-stream", None)
    request.server.write(content)


_views = {
    None: view_summary,
    VIEW_TREE: view_tree,
    VIEW_BLOB: view_blob,
    VIEW_RAW: view_raw,
}


def view_error(server, cfg, exc):
    if isinstance(exc, GroveException):
        status = exc.status or status_line(500)
        msg = exc.msg
    elif isinstance(exc, vclib.Error):
        logger.error("version control error: %s", exc)
        status = status_line(500)
        msg = str(exc)
    else:
        logger.exception("unexpected error")
        status = status_line(500)
        msg = "An internal error occurred."

    logger.info("Sending %s status: %s", server.getenv("REMOTE_ADDR", "-"), status)
    if server.response_started():
        logger.error("response already started, dropping error page: %s", msg)
        return

    data = {"status": server.escape(status), "msg": server.escape(msg), "vsn": __version__}
    fp = io.StringIO()
    try:
        get_view_template(cfg, "error").generate(fp, data)
    except Exception:
        logger.exception("could not render the error template")
        server.start_response("text/plain; charset=UTF-8", status)
        server.write(f"{msg}\n{status}\n")
        return
    server.start_response(status=status)
    server.write(fp.getvalue())


def main(server, cfg):
    try:
        request = Request(server, cfg)
        request.run_grove()
    except Exception as e:
        view_error(server, cfg, e)


def load_config(pathname=None):
    """Build the configuration: defaults, overlaid by the file at
    PATHNAME (or the GROVE_CONF_PATHNAME environment variable)."""

    if pathname is None:
        pathname = os.environ.get("GROVE_CONF_PATHNAME")

    cfg = config.Config()
    cfg.set_defaults()
    if pathname:
        cfg.load_config(pathname)
    else:
        cfg.validate()
    return cfg


def make_application(cfg):
    """Return a WSGI application serving requests with configuration CFG."""

    def application(environ, start_response):
        server = sapi.WsgiServer(environ, start_response)
        main(server, cfg)
        return []

    if cfg.options.enable_gzip:
        application = sapi.gzip_middleware(application)
    return application
