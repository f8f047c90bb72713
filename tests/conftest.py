"""Shared fixtures: plain directory trees and real git repositories."""

import os
import shutil
import wsgiref.util

import pygit2
import pytest

from grove import views

AUTHOR = pygit2.Signature("Alice", "alice@example.com")

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not found")


def make_dir(path, mode=0o755):
    os.makedirs(path, exist_ok=True)
    os.chmod(path, mode)
    return str(path)


def commit_files(repo, files, message, author=AUTHOR, remove=()):
    """Write FILES (name -> bytes) into the working tree of REPO, drop the
    paths in REMOVE, and commit the result on HEAD."""

    for name in remove:
        os.remove(os.path.join(repo.workdir, name))
        repo.index.remove(name)
    for name, content in files.items():
        full = os.path.join(repo.workdir, name)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "wb") as fp:
            fp.write(content)
        repo.index.add(name)
    repo.index.write()
    tree = repo.index.write_tree()
    parents = [] if repo.head_is_unborn else [repo.head.target]
    return repo.create_commit("HEAD", author, author, message, tree, parents)


@pytest.fixture
def toplevel(tmp_path):
    return make_dir(os.path.realpath(tmp_path / "srv"))


@pytest.fixture
def git_repo(toplevel):
    """A repository at <toplevel>/projects/demo with three commits and a
    tag:

        README          "hello\\n"
        src/main.go     renamed from main.go in the third commit
    """

    path = make_dir(os.path.join(toplevel, "projects", "demo"))
    make_dir(os.path.join(toplevel, "projects"))
    repo = pygit2.init_repository(path)
    first = commit_files(repo, {"README": b"hello\n", "main.go": b"package main\n"}, "Initial commit")
    repo.references.create("refs/tags/v0.1", first)
    commit_files(
        repo,
        {"main.go": b"package main\n\nfunc main() {}\n"},
        "Add main function\n\nThe program does nothing yet.\n",
    )
    commit_files(
        repo,
        {"src/main.go": b"package main\n\nfunc main() {}\n"},
        "Move main.go into src",
        remove=["main.go"],
    )
    return repo


@pytest.fixture
def cfg(toplevel, monkeypatch):
    monkeypatch.delenv("GROVE_CONF_PATHNAME", raising=False)
    cfg = views.load_config()
    cfg.general.root_dir = toplevel
    cfg.options.enable_gzip = 0
    cfg.validate()
    return cfg


def run_app(application, path, query="", **environ_extra):
    """Call the WSGI APPLICATION for PATH and return (status, headers,
    body)."""

    environ = {"PATH_INFO": path, "QUERY_STRING": query, "REMOTE_ADDR": "127.0.0.1"}
    environ.update(environ_extra)
    wsgiref.util.setup_testing_defaults(environ)
    response = {}
    body = []

    def start_response(status, headers, exc_info=None):
        response["status"] = status
        response["headers"] = dict(headers)
        return body.append

    result = application(environ, start_response)
    body.extend(result)
    return response["status"], response["headers"], b"".join(body)
