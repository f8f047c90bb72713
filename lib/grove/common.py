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
# common: common definitions for the grove library
#
# -----------------------------------------------------------------------

import http


class _item:
    def __init__(self, **kw):
        vars(self).update(kw)


class TemplateData:
    """A custom dictionary-like object that allows one-time definition
    of keys, and only value fetches and changes thereafter.

    EZT doesn't require the use of this special class -- a normal
    dict-type data dictionary works fine.  But use of this class will
    assist those who want the data sent to their templates to have a
    consistent set of keys."""

    def __init__(self, initial_data=None):
        self._items = dict(initial_data or {})

    def __getitem__(self, key):
        return self._items.__getitem__(key)

    def __setitem__(self, key, item):
        assert key in self._items, f"undeclared template key: {key}"
        return self._items.__setitem__(key, item)

    def keys(self):
        return self._items.keys()

    def merge(self, template_data):
        """Merge the data in TemplateData instance TEMPLATE_DATA into this
        instance."""

        assert isinstance(template_data, TemplateData)
        self._items.update(template_data._items)


def status_line(code):
    """Return the HTTP status line ("404 Not Found") for integer CODE."""
    return f"{code} {http.HTTPStatus(code).phrase}"


class GroveException(Exception):
    def __init__(self, msg, status=None):
        Exception.__init__(self, msg)
        self.msg = msg
        self.status = status

    def __str__(self):
        if self.status:
            return f"{self.status}: {self.msg}"
        return f"grove unrecoverable error: {self.msg}"
