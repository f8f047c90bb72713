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

"""Version Control lib is an abstract API to read the metadata of
version-controlled repositories such as git.
"""

from dataclasses import dataclass


# item types returned by the drivers.
FILE = "FILE"
DIR = "DIR"


# ======================================================================
#
class Repository:
    """Abstract class representing a repository.

    In addtion to those methods defined here, instances of subclasses
    should have attribute(s) below.

    rootpath        (str) Hold the absolute path to the repository's
                    working tree in the local file system."""

    def read_file_at(self, rev, path):
        """Return the raw contents (bytes) of file PATH as it existed at
        revision REV.

        PATH is relative to the root of the repository.
        """

    def list_dir_at(self, rev, path):
        """Return the names of the entries of directory PATH at revision
        REV, in the order the version control system lists them.

        Subdirectory names carry a trailing '/'.  If PATH does not name
        a directory, the result is an empty list.
        """

    def short_hash(self, ref):
        """Return the abbreviated (at least 8 characters) hash of REF."""

    def tags(self):
        """Return the list of tag names, in native listing order."""

    def total_commits(self):
        """Return the number of commits reachable from any ref."""

    def ref_exists(self, ref):
        """Return True iff REF names something in the repository."""

    def commits(self, ref, max_count=0, path=None):
        """Return a list of Commit objects, youngest first.

        max_count is the maximum number of returned Commits, or 0 to
        return all available data

        path, if not None, restricts the history to commits touching
        that path, following renames
        """

    def branch(self, ref):
        """Return the symbolic (branch) name of REF."""


# ======================================================================
@dataclass(frozen=True, eq=False)
class Commit:
    """Instances hold the log information of a single commit."""

    sha: str
    time: str
    author: str
    subject: str
    body: str = ""

    def __eq__(self, other):
        if not isinstance(other, Commit):
            return NotImplemented
        return self.sha == other.sha

    def __hash__(self):
        return hash(self.sha)


# ======================================================================


class Error(Exception):
    pass


class ReposNotFound(Error):
    pass

