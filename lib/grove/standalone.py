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
# standalone: run grove with a simple, threaded HTTP server
#
# -----------------------------------------------------------------------

import getopt
import logging
import os
import os.path
import socketserver
import sys
from wsgiref import simple_server

from grove import __version__, config, views

logger = logging.getLogger("grove")


class Options:
    bind = "0.0.0.0"  # interface to bind to
    port = 8860  # port to listen on
    resource_dir = None  # use the configured resource directory
    config_file = None
    perms = None
    root_dir = None


class BadUsage(Exception):
    pass


class ThreadingWSGIServer(socketserver.ThreadingMixIn, simple_server.WSGIServer):
    """Serve every request from its own thread."""

    daemon_threads = True


class GroveRequestHandler(simple_server.WSGIRequestHandler):
    def log_message(self, format, *args):
        logger.info("%s - %s", self.address_string(), format % args)


def serve(options):
    cfg = views.load_config(options.config_file)
    if options.root_dir is not None:
        cfg.general.root_dir = options.root_dir
    if options.perms is not None:
        cfg.general.perms = options.perms
    if options.resource_dir is not None:
        cfg.options.resource_dir = os.path.abspath(options.resource_dir)
    cfg.validate()

    logger.info("Version: %s", __version__)
    logger.info("Serving %s (perms: %s)", cfg.general.root_dir, cfg.general.perms.name.lower())
    httpd = simple_server.make_server(
        options.bind,
        options.port,
        views.make_application(cfg),
        server_class=ThreadingWSGIServer,
        handler_class=GroveRequestHandler,
    )
    logger.info("Starting server on %s:%d", options.bind, options.port)
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        httpd.server_close()
    logger.info("server stopped")


def usage(err=None):
    cmd = os.path.basename(sys.argv[0])
    if err:
        sys.stderr.write(f"ERROR: {err}\n\n")
    sys.stderr.write(
        f"""Usage: {cmd} [OPTIONS] [REPOSITORY-DIR]

Serve the git repositories found below REPOSITORY-DIR (default: the
current directory) for browsing and cloning over HTTP.

Options:

  --bind=HOST (-b)           Listen on interface HOST.  [default: {Options.bind}]

  --port=PORT (-p)           Listen on PORT.  [default: {Options.port}]

  --res=PATH (-r)            Serve style sheets and icons from PATH.

  --config-file=PATH (-c)    Use the file at PATH as the grove
                             configuration file.

  --perms=LEVEL              Serve what is readable by the world, group
                             or owner (world, group, owner or 0-2).

  --version                  Print the version and exit.
  --show-bind                Print the default bind interface and exit.
  --show-port                Print the default port and exit.
  --show-res                 Print the default resource directory and exit.
"""
    )


def main(argv=None):
    """Command-line interface (looks at argv to decide what to do)."""

    if argv is None:
        argv = sys.argv
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s: %(message)s", datefmt="%H:%M:%S")

    options = Options()
    try:
        opts, args = getopt.getopt(
            argv[1:],
            "b:p:r:c:h",
            [
                "bind=",
                "port=",
                "res=",
                "config-file=",
                "perms=",
                "help",
                "version",
                "show-bind",
                "show-port",
                "show-res",
            ],
        )
        for opt, val in opts:
            if opt in ("-h", "--help"):
                usage()
                return 0
            elif opt == "--version":
                print(__version__)
                return 0
            elif opt == "--show-bind":
                print(Options.bind)
                return 0
            elif opt == "--show-port":
                print(Options.port)
                return 0
            elif opt == "--show-res":
                cfg = config.Config()
                cfg.set_defaults()
                print(cfg.options.resource_dir)
                return 0
            elif opt in ("-b", "--bind"):
                options.bind = val
            elif opt in ("-p", "--port"):
                try:
                    options.port = int(val)
                except ValueError:
                    raise BadUsage(f"Port '{val}' is not a valid port number")
            elif opt in ("-r", "--res"):
                options.resource_dir = val
            elif opt in ("-c", "--config-file"):
                options.config_file = val
            elif opt == "--perms":
                options.perms = val
        if len(args) > 1:
            raise BadUsage("Only one repository directory may be given")
        if args:
            options.root_dir = os.path.abspath(args[0])
    except (getopt.error, BadUsage) as err:
        usage(err)
        return 2

    try:
        serve(options)
    except config.GroveConfigurationError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
