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

import os.path
import stat

from grove import vcauth


class GroveAuthorizer(vcauth.GenericGroveAuthorizer):
    """An authorizer which serves whatever the filesystem permission bits
    expose at the configured level ('perms' parameter)."""

    def __init__(self, params={}):
        self.level = vcauth.PermissionLevel.from_string(params.get("perms", 0))

    def check_root_access(self, rootpath, st):
        name = os.path.basename(os.path.normpath(rootpath))
        return vcauth.check_perms(name, st.st_mode, stat.S_ISDIR(st.st_mode), self.level)

    def check_gitdir_access(self, gitpath, st):
        return vcauth.check_perm_bits(st.st_mode, stat.S_ISDIR(st.st_mode), self.level)
