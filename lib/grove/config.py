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
# config.py: configuration utilities
#
# -----------------------------------------------------------------------

import configparser
import os
import os.path

from grove import vcauth


#########################################################################
#
# CONFIGURATION
# -------------
#
# Configuration is read from an INI-style file (grove.conf) whose
# sections overlay the built-in defaults of set_defaults():
#
#    [general]    root_dir, perms
#    [options]    authorizer, template_dir, resource_dir, log_limit,
#                 enable_gzip
#    [utilities]  git, git_timeout
#
# The configuration is built once, before the first request is served,
# and is never modified afterwards.
#
#########################################################################

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


class Config:
    _base_sections = (
        # Base configuration sections.
        "general",
        "options",
        "utilities",
    )
    _string_options = (
        # Options never converted to integers.
        "root_dir",
        "perms",
        "authorizer",
        "template_dir",
        "resource_dir",
        "git",
    )

    def __init__(self):
        self.conf_path = None
        self.base = os.getcwd()
        for section in self._base_sections:
            setattr(self, section, _sub_config())

    def load_config(self, pathname):
        """Load the configuration file at PATHNAME, applying configuration
        settings there as overrides to the built-in default values."""

        self.conf_path = pathname if os.path.isfile(pathname) else None
        self.base = os.path.dirname(os.path.abspath(pathname))
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = lambda x: x  # don't case-normalize option names.
        try:
            parser.read(self.conf_path or [], encoding="utf-8")
        except configparser.Error as e:
            raise GroveConfigurationError(f"malformed configuration: {e}")

        for section in parser.sections():
            if section not in self._base_sections:
                raise IllegalSection(section)
            self._process_section(parser, section)
        self.validate()

    def _process_section(self, parser, section):
        sc = getattr(self, section)
        for opt in parser.options(section):
            value = parser.get(section, opt)
            if opt not in self._string_options:
                try:
                    value = int(value)
                except ValueError:
                    pass
            setattr(sc, opt, value)

    def path(self, path):
        """Return PATH relative to the config file directory."""
        return os.path.join(self.base, path)

    def validate(self):
        """Normalize option values, raising GroveConfigurationError for
        values that can't be used."""

        try:
            self.general.perms = vcauth.PermissionLevel.from_string(self.general.perms)
        except ValueError as e:
            raise GroveConfigurationError(f"malformed configuration: 'perms': {e}")
        self.general.root_dir = os.path.normpath(self.path(self.general.root_dir))
        self.options.template_dir = self.path(self.options.template_dir)
        self.options.resource_dir = self.path(self.options.resource_dir)
        for section, opt in (("options", "log_limit"), ("utilities", "git_timeout")):
            value = getattr(getattr(self, section), opt)
            if not isinstance(value, int) or value < 0:
                raise GroveConfigurationError(
                    f"malformed configuration: '{opt}' must be a non-negative integer"
                )

    def get_authorizer_params(self):
        """Return the parameters handed to the configured authorizer."""
        return {"perms": self.general.perms}

    def set_defaults(self):
        "Set some default values in the configuration."

        self.general.root_dir = os.getcwd()
        self.general.perms = vcauth.PermissionLevel.WORLD

        self.options.authorizer = "modebits"
        self.options.template_dir = os.path.join(_PACKAGE_DIR, "templates")
        self.options.resource_dir = os.path.join(_PACKAGE_DIR, "resources")
        self.options.log_limit = 20
        self.options.enable_gzip = 1

        self.utilities.git = "git"
        self.utilities.git_timeout = 0


class GroveConfigurationError(Exception):
    pass


class IllegalSection(GroveConfigurationError):
    def __init__(self, section_name):
        GroveConfigurationError.__init__(self, section_name)
        self.section_name = section_name

    def __str__(self):
        return f"malformed configuration: illegal section: {self.section_name}"


class _sub_config:
    pass
