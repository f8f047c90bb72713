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

"""Generic API for implementing authorization checks employed by grove,
and the permission-bit policy shared by the authorizers."""

import enum

from grove import vclib


class PermissionLevel(enum.IntEnum):
    """Which permission-bit triplet decides whether an entry is served."""

    WORLD = 0
    GROUP = 1
    OWNER = 2

    @classmethod
    def from_string(cls, value):
        """Parse VALUE, either a level name ("world") or its ordinal
        ("0").  Raise ValueError for anything else."""
        if isinstance(value, int):
            return cls(value)
        value = str(value).strip()
        if value.isdigit():
            return cls(int(value))
        try:
            return cls[value.upper()]
        except KeyError:
            raise ValueError(f"unknown permission level: {value!r}")


# Bits required to serve an entry, per level and entry kind.  Files must
# be readable; directories must be readable and listable.
PERMISSION_MASKS = {
    PermissionLevel.WORLD: {vclib.FILE: 0o004, vclib.DIR: 0o005},
    PermissionLevel.GROUP: {vclib.FILE: 0o040, vclib.DIR: 0o050},
    PermissionLevel.OWNER: {vclib.FILE: 0o400, vclib.DIR: 0o500},
}


def check_perm_bits(mode, is_dir, level):
    """Return True iff permission bits MODE allow serving the entry at
    LEVEL.  IS_DIR tells whether the entry is a directory."""
    mask = PERMISSION_MASKS[level][vclib.DIR if is_dir else vclib.FILE]
    return bool(mode & mask)


def check_perms(name, mode, is_dir, level):
    """Like check_perm_bits(), but hidden entries (NAME starting with
    '.') are never servable."""
    if name.startswith("."):
        return False
    return check_perm_bits(mode, is_dir, level)


class GenericGroveAuthorizer:
    """Abstract class encapsulating repository authorization routines."""

    def __init__(self, params={}):
        """Create a GenericGroveAuthorizer object which will be used to
        validate that repositories may be served.  PARAMS is a
        dictionary of custom parameters for the authorizer."""
        pass

    def check_root_access(self, rootpath, st):
        """Return True iff the repository rooted at ROOTPATH, whose
        os.stat() result is ST, may be browsed."""
        pass

    def check_gitdir_access(self, gitpath, st):
        """Return True iff the git directory GITPATH, whose os.stat()
        result is ST, may be accessed via git's smart protocol."""
        pass

