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

"Version Control lib driver for locally accessible git repositories"

import os.path

from grove import vclib
from .git_commandline import CommandRunner, GitCommandError, GitCommandRunner
from .gitlog import LOG_FORMAT, LOG_SEPARATOR, parse_log

__all__ = [
    "CommandRunner",
    "GitCommandError",
    "GitCommandRunner",
    "GitRepository",
    "git_exec_path",
]

HTTP_BACKEND = "git-http-backend"


def _decode(output: bytes) -> str:
    # carriage returns never reach the callers
    return output.decode("utf-8", "surrogateescape").replace("\r", "")


def git_exec_path(runner: CommandRunner) -> str:
    """Return the directory holding git's helper programs (such as
    git-http-backend), as reported by 'git --exec-path'."""
    return _decode(runner.run(None, ["--exec-path"])).rstrip("\n")


class GitRepository(vclib.Repository):
    def __init__(self, rootpath: str, runner: CommandRunner | None = None):
        if not os.path.isdir(rootpath):
            raise vclib.ReposNotFound(rootpath)
        self.rootpath = rootpath
        self.runner = runner or GitCommandRunner()

    # --- private methods ---

    def _git(self, *args) -> str:
        return _decode(self.runner.run(self.rootpath, args))

    def _git_bytes(self, *args) -> bytes:
        return self.runner.run(self.rootpath, args)

    def _git_lines(self, *args) -> list[str]:
        output = self._git(*args).rstrip("\n")
        return output.split("\n") if output else []

    # --- public API ---

    def read_file_at(self, rev: str, path: str) -> bytes:
        return self._git_bytes("--no-pager", "show", f"{rev}:{path}")

    def list_dir_at(self, rev: str, path: str) -> list[str]:
        output = self._git("--no-pager", "show", "--name-only", f"{rev}:{path}")
        # 'git show' of a tree prints "tree <rev>:<path>", a blank line,
        # and then one entry per line.
        parts = output.split("\n\n", 1)
        if len(parts) == 2 and parts[0].startswith("tree"):
            return [name for name in parts[1].rstrip("\n").split("\n") if name]
        return []

    def short_hash(self, ref: str) -> str:
        return self._git("rev-parse", "--short=8", ref).rstrip("\n")

    def branch(self, ref: str) -> str:
        return self._git("rev-parse", "--abbrev-ref", ref).rstrip("\n")

    def tags(self) -> list[str]:
        return self._git_lines("tag", "--list")

    def total_commits(self) -> int:
        return len(self._git_lines("rev-list", "--all"))

    def ref_exists(self, ref: str) -> bool:
        # A nonzero exit of 'git rev-list HEAD..<ref>' is taken to mean
        # that REF doesn't exist, whatever the actual cause was.
        try:
            self._git("rev-list", f"HEAD..{ref}")
        except GitCommandError:
            return False
        return True

    def commits(self, ref: str, max_count: int = 0, path: str | None = None) -> list[vclib.Commit]:
        args = ["--no-pager", "log", f"--format=format:{LOG_FORMAT}{LOG_SEPARATOR}", ref]
        if max_count > 0:
            args.extend(["-n", str(max_count)])
        if path:
            args.extend(["--follow", "--", path])
        return parse_log(self._git(*args))

    def exec_path(self) -> str:
        return git_exec_path(self.runner)
