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
# resolver: locate the repository enclosing a requested path
#
# -----------------------------------------------------------------------

import enum
import os
import os.path
from dataclasses import dataclass

# Name of the entry which marks its parent directory as a repository root.
GIT_DIR = ".git"

# Path prefixes recognized below a repository root.
VIEW_BLOB = "blob"
VIEW_TREE = "tree"
VIEW_RAW = "raw"


class Outcome(enum.Enum):
    OK = 200
    FORBIDDEN = 403
    NOT_FOUND = 404
    INTERNAL_ERROR = 500

    @property
    def http_status(self):
        return self.value


@dataclass(frozen=True)
class PathResolution:
    """Where a requested path leads.

    repository     Path of the repository root (or, when is_repository
                   is false, of the plain directory to browse).
    path           Path below the repository root, with the view prefix
                   removed ('' for the repository root itself).
    is_file        True for blob and raw views.
    status         An Outcome; the other fields are only meaningful when
                   it is Outcome.OK.
    view           VIEW_BLOB, VIEW_TREE, VIEW_RAW or None.
    is_repository  False when no repository was found below the top
                   level directory.
    """

    repository: str
    path: str = ""
    is_file: bool = False
    status: Outcome = Outcome.OK
    view: str | None = None
    is_repository: bool = True


def is_within(toplevel, path):
    try:
        return os.path.commonpath([toplevel, path]) == toplevel
    except ValueError:
        return False


def _classify(repository, remainder):
    """Return the PathResolution for REMAINDER below the repository root
    REPOSITORY."""

    if not remainder:
        return PathResolution(repository)

    # With a trailing slash, a bare "tree" splits like "tree/".
    view, path = (remainder + "/").split("/", 1)
    if view in (VIEW_BLOB, VIEW_RAW):
        return PathResolution(repository, path.rstrip("/"), True, view=view)
    if view == VIEW_TREE:
        return PathResolution(repository, path or "./", False, view=view)
    return PathResolution(repository, status=Outcome.NOT_FOUND)


def split_repository(toplevel, path, authorizer=None):
    """Walk upward from PATH until a directory containing a '.git' entry
    is found, but never above TOPLEVEL, and return a PathResolution.

    If TOPLEVEL itself is reached, PATH is served as a plain directory.
    A repository root denied by AUTHORIZER is FORBIDDEN; a root which
    vanishes while it is being checked is an INTERNAL_ERROR.  Paths
    outside of TOPLEVEL, and paths no file could have, are NOT_FOUND."""

    toplevel = os.path.normpath(toplevel)
    # no file system entry can be named with a NUL
    if "\0" in path:
        return PathResolution(toplevel, status=Outcome.NOT_FOUND)
    repository = os.path.normpath(path)
    remainder = ""
    while True:
        if repository == toplevel:
            return PathResolution(
                os.path.join(toplevel, remainder) if remainder else toplevel,
                is_repository=False,
            )
        if not is_within(toplevel, repository):
            return PathResolution(toplevel, status=Outcome.NOT_FOUND)

        try:
            os.stat(os.path.join(repository, GIT_DIR))
        except (OSError, ValueError):
            name = os.path.basename(repository)
            remainder = f"{name}/{remainder}" if remainder else name
            repository = os.path.dirname(repository)
            continue

        # The marker exists, so failing to stat its parent is an operational fault.
        try:
            st = os.stat(repository)
        except (OSError, ValueError):
            return PathResolution(repository, status=Outcome.INTERNAL_ERROR)
        if authorizer is not None and not authorizer.check_root_access(repository, st):
            return PathResolution(repository, status=Outcome.FORBIDDEN)
        return _classify(repository, remainder)
