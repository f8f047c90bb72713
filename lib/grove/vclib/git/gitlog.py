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

"""Parse the output of 'git log' run with LOG_FORMAT.

Every commit is printed as

    <full hash>
    <commit time, relative>
    <author name>
    <subject>
    <body, zero or more lines>

followed by LOG_SEPARATOR.  With the 'format:' (rather than 'tformat:')
placeholder git puts a newline *between* records, so every record but
the first starts with a blank line, and the text after the last
separator is empty.
"""

import enum

from grove import vclib


LOG_FORMAT = "%H%n%cr%n%an%n%s%n%b"
LOG_SEPARATOR = "----GROVE-LOG-SEPARATOR----"


class State(enum.Enum):
    AWAIT_HASH = "hash"
    AWAIT_TIME = "time"
    AWAIT_AUTHOR = "author"
    AWAIT_SUBJECT = "subject"
    IN_BODY = "body"


# state -> (field filled by the next non-blank line, following state)
_TRANSITIONS = {
    State.AWAIT_HASH: ("sha", State.AWAIT_TIME),
    State.AWAIT_TIME: ("time", State.AWAIT_AUTHOR),
    State.AWAIT_AUTHOR: ("author", State.AWAIT_SUBJECT),
    State.AWAIT_SUBJECT: ("subject", State.IN_BODY),
}


def _record_lines(record):
    lines = record.split("\n")
    # the newline ending the last body line doesn't start a new line
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def parse_record(record):
    """Parse the text of a single log record into a vclib.Commit.

    Blank lines are skipped while any of the hash, time, author and
    subject fields is still unfilled; once the subject is known, every
    line (blank or not) belongs to the body.  A record without content
    still yields a Commit, with empty fields."""

    fields = {"sha": "", "time": "", "author": "", "subject": ""}
    body = []
    state = State.AWAIT_HASH
    for line in _record_lines(record):
        if state is State.IN_BODY:
            body.append(line + "\n")
            continue
        if not line:
            continue
        name, state = _TRANSITIONS[state]
        fields[name] = line
    return vclib.Commit(body="".join(body), **fields)


def parse_log(text, separator=LOG_SEPARATOR):
    """Return the list of Commits in the log TEXT, in log order.

    Candidate records that carry no hash (like the empty text after the
    final separator) are discarded."""

    commits = []
    for record in text.split(separator):
        commit = parse_record(record)
        if commit.sha:
            commits.append(commit)
    return commits
