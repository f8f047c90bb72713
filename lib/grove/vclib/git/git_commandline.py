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

"""Run the commandline client 'git' on behalf of the git driver."""

import logging
import subprocess
import sys

from grove import vclib

logger = logging.getLogger(__name__)


class GitCommandError(vclib.Error):
    def __init__(self, errout, cmd, retcode):
        if errout[-1:] == "\n":
            errout = errout[:-1]
        self.cmd = cmd
        self.retcode = retcode
        self.msg = errout
        vclib.Error.__init__(self, f"git {cmd} exit with code {retcode:d}: {errout}")


class CommandRunner:
    """Narrow interface used by the git driver to execute commands.

    Substitute an instance of a subclass to run the driver without a
    real git executable."""

    def run(self, cwd, args):
        """Run the command with argument list ARGS in directory CWD (the
        current directory if None) and return its standard output as
        bytes.  Raise GitCommandError if the command fails."""
        raise NotImplementedError


class GitCommandRunner(CommandRunner):
    def __init__(self, git_path="git", timeout=None):
        self.git_path = git_path
        self.timeout = timeout or None

    def run(self, cwd, args):
        args = list(args)
        cmd = " ".join(args)
        logger.debug("running git %s in %s", cmd, cwd)
        try:
            proc = subprocess.run(
                [self.git_path] + args,
                cwd=cwd or None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
                close_fds=(sys.platform != "win32"),
            )
        except subprocess.TimeoutExpired:
            raise GitCommandError(f"timed out after {self.timeout} seconds", cmd, -1)
        except OSError as e:
            raise GitCommandError(str(e), cmd, -1)
        if proc.returncode:
            errout = proc.stderr.decode("utf-8", "replace")
            raise GitCommandError(errout, cmd, proc.returncode)
        return proc.stdout
