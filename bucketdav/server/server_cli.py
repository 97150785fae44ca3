"""
server_cli
==========

:Author: Martin Wendt
:Copyright: Licensed under the MIT license, see LICENSE file in this package.

Standalone server that runs BucketDAV.

These tasks are performed:

    - Set up the configuration from defaults, configuration file, and command line
      options.
    - Instantiate the BucketDAVApp object (which is a WSGI application)
    - Start a WSGI server for this BucketDAVApp object

Configuration is defined like this:

    1. Get the name of a configuration file from command line option
       ``--config=FILENAME`` (or short ``-cFILENAME``).
       If this option is omitted, we use ``bucketdav.yaml`` or
       ``bucketdav.json`` in the current directory.
    2. Set reasonable default settings.
    3. If configuration file exists: read and use it to overwrite defaults.
    4. If command line options are passed, use them to override settings:

       ``--host`` option overrides ``host`` setting.

       ``--port`` option overrides ``port`` setting.

       ``--user`` and ``--password`` override the ``http_authenticator``
       credentials.
"""

import argparse
import copy
import logging
import os
import platform
import sys
from pprint import pformat

import yaml
from json5 import load as json_load

from bucketdav import __version__, util
from bucketdav.dav_app import BucketDAVApp
from bucketdav.default_conf import DEFAULT_CONFIG, DEFAULT_VERBOSE

__docformat__ = "reStructuredText"

#: Try this config files if no --config=... option is specified
DEFAULT_CONFIG_FILES = ("bucketdav.yaml", "bucketdav.json")

_logger = logging.getLogger("bucketdav")


def _get_common_info(config):
    """Calculate some common info."""
    # Support SSL
    ssl_certificate = util.fix_path(config.get("ssl_certificate"), config)
    ssl_private_key = util.fix_path(config.get("ssl_private_key"), config)
    ssl_certificate_chain = util.fix_path(config.get("ssl_certificate_chain"), config)
    use_ssl = False
    if ssl_certificate and ssl_private_key:
        use_ssl = True
    elif ssl_certificate or ssl_private_key:
        raise RuntimeError(
            "Option 'ssl_certificate' and 'ssl_private_key' must be used together."
        )

    protocol = "https" if use_ssl else "http"
    url = f"{protocol}://{config['host']}:{config['port']}"
    info = {
        "use_ssl": use_ssl,
        "ssl_cert": ssl_certificate,
        "ssl_pk": ssl_private_key,
        "ssl_chain": ssl_certificate_chain,
        "protocol": protocol,
        "url": url,
    }
    return info


class FullExpandedPath(argparse.Action):
    """Expand user- and relative-paths"""

    def __call__(self, parser, namespace, values, option_string=None):
        new_val = os.path.abspath(os.path.expanduser(values))
        setattr(namespace, self.dest, new_val)


def _init_command_line_options(args=None):
    """Parse command line options into a dictionary."""
    description = """\

Run a WebDAV server on top of an object store bucket.

Examples:

  Serve an in-memory store, protected by a shared credential:
    bucketdav --port=8080 --host=0.0.0.0 --user=joe --password=secret

  Run using a specific configuration file:
    bucketdav --port=80 --host=0.0.0.0 --config=~/my_bucketdav.yaml

  If no config file is specified, the application will look for a file named
  'bucketdav.yaml' or 'bucketdav.json' in the current directory.
  """

    epilog = """\
Licensed under the MIT license.
Based on WsgiDAV, see https://github.com/mar10/wsgidav

"""

    parser = argparse.ArgumentParser(
        prog="bucketdav",
        description=description,
        epilog=epilog,
        allow_abbrev=False,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        help="port to serve on (default: 8080)",
    )
    parser.add_argument(
        "-H",  # '-h' conflicts with --help
        "--host",
        help=(
            "host to serve from (default: localhost). 'localhost' is only "
            "accessible from the local computer. Use 0.0.0.0 to make your "
            "application public"
        ),
    )
    parser.add_argument(
        "--server",
        choices=SUPPORTED_SERVERS.keys(),
        help="type of pre-installed WSGI server to use (default: cheroot).",
    )
    parser.add_argument(
        "--user",
        help="user name of the shared credential",
    )
    parser.add_argument(
        "--password",
        help="password of the shared credential",
    )

    qv_group = parser.add_mutually_exclusive_group()
    qv_group.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=3,
        help="increment verbosity by one (default: %(default)s, range: 0..5)",
    )
    qv_group.add_argument(
        "-q", "--quiet", default=0, action="count", help="decrement verbosity by one"
    )

    qv_group = parser.add_mutually_exclusive_group()
    qv_group.add_argument(
        "-c",
        "--config",
        dest="config_file",
        action=FullExpandedPath,
        help=(
            f"configuration file (default: {DEFAULT_CONFIG_FILES} in current directory)"
        ),
    )

    qv_group.add_argument(
        "--no-config",
        action="store_true",
        help=f"do not try to load default {DEFAULT_CONFIG_FILES}",
    )

    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="print version info and exit (may be combined with --verbose)",
    )

    args = parser.parse_args(args)

    args.verbose -= args.quiet
    del args.quiet

    if args.version:
        if args.verbose >= 4:
            version_info = "BucketDAV/{} {}/{}({} bit) {}".format(
                __version__,
                platform.python_implementation(),
                util.PYTHON_VERSION,
                "64" if sys.maxsize > 2**32 else "32",
                platform.platform(aliased=True),
            )
            version_info += f"\nPython from: {sys.executable}"
        else:
            version_info = f"{__version__}"
        print(version_info)
        sys.exit()

    if args.no_config:
        pass
        # ... else ignore default config files
    elif args.config_file is None:
        # If --config was omitted, use default (if it exists)
        for filename in DEFAULT_CONFIG_FILES:
            defPath = os.path.abspath(filename)
            if os.path.exists(defPath):
                if args.verbose >= 3:
                    print(f"Using default configuration file: {defPath}")
                args.config_file = defPath
                break
    else:
        # If --config was specified convert to absolute path and assert it exists
        args.config_file = os.path.abspath(args.config_file)
        if not os.path.isfile(args.config_file):
            parser.error(
                f"Could not find specified configuration file: {args.config_file}"
            )

    # Convert args object to dictionary
    cmdLineOpts = args.__dict__.copy()
    if args.verbose >= 5:
        print("Command line args:")
        for k, v in cmdLineOpts.items():
            if k == "password" and v:
                v = "********"
            print(f"    {k:>12}: {v}")
    return cmdLineOpts, parser


def _read_config_file(config_file, _verbose):
    """Read configuration file options into a dictionary."""

    config_file = os.path.abspath(config_file)

    if not os.path.exists(config_file):
        raise RuntimeError(f"Couldn't open configuration file {config_file!r}.")

    if config_file.endswith(".json"):
        with open(config_file, encoding="utf-8-sig") as fp:
            conf = json_load(fp)

    elif config_file.endswith((".yaml", ".yml")):
        with open(config_file, encoding="utf-8-sig") as fp:
            conf = yaml.safe_load(fp)

    else:
        raise RuntimeError(
            f"Unsupported config file format (expected yaml or json): {config_file}"
        )

    conf = conf or {}
    conf["_config_file"] = config_file
    conf["_config_root"] = os.path.dirname(config_file)
    return conf


def _init_config(args=None):
    """Setup configuration dictionary from default, command line and configuration file."""
    cli_opts, parser = _init_command_line_options(args)
    cli_verbose = cli_opts["verbose"]

    # Set config defaults
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["_config_file"] = None
    config["_config_root"] = os.getcwd()

    # Configuration file overrides defaults
    config_file = cli_opts.get("config_file")
    if config_file:
        file_opts = _read_config_file(config_file, cli_verbose)
        util.deep_update(config, file_opts)
        if cli_verbose != DEFAULT_VERBOSE and "verbose" in file_opts:
            if cli_verbose >= 2:
                print(
                    "Config file defines 'verbose: {}' but is overridden by command line: {}.".format(
                        file_opts["verbose"], cli_verbose
                    )
                )
            config["verbose"] = cli_verbose
    else:
        if cli_verbose >= 2:
            print("Running without configuration file.")

    # Command line overrides file
    if cli_opts.get("port"):
        config["port"] = cli_opts.get("port")
    if cli_opts.get("host"):
        config["host"] = cli_opts.get("host")
    if cli_opts.get("server") is not None:
        config["server"] = cli_opts.get("server")

    auth_conf = util.get_dict_value(config, "http_authenticator", as_dict=True)
    if cli_opts.get("user"):
        auth_conf["username"] = cli_opts.get("user")
    if cli_opts.get("password"):
        auth_conf["password"] = cli_opts.get("password")
    config["http_authenticator"] = auth_conf

    # Command line overrides file only if -v or -q where passed:
    if cli_opts.get("verbose") != DEFAULT_VERBOSE:
        config["verbose"] = cli_opts.get("verbose")

    if config["verbose"] >= 5:
        config_cleaned = util.purge_passwords(config)
        print(
            "Configuration({}):\n{}".format(
                cli_opts["config_file"], pformat(config_cleaned)
            )
        )

    if not config.get("store"):
        parser.error("No object store defined.")

    if not auth_conf.get("username") or not auth_conf.get("password"):
        parser.error(
            "A shared credential is required: pass --user and --password "
            "or configure 'http_authenticator.username' and '.password'."
        )

    return cli_opts, config


def _run_cheroot(app, config, _server):
    """Run BucketDAV using cheroot.server (https://cheroot.cherrypy.dev/)."""
    try:
        from cheroot import wsgi
        from cheroot.ssl.builtin import BuiltinSSLAdapter
    except ImportError:
        _logger.exception("Could not import Cheroot (https://cheroot.cherrypy.dev/).")
        _logger.error("Try `pip install cheroot`.")
        return False

    version = (
        f"{util.public_bucketdav_info} {wsgi.Server.version} {util.public_python_info}"
    )

    info = _get_common_info(config)

    server_args = {
        "bind_addr": (config["host"], config["port"]),
        "wsgi_app": app,
        "server_name": version,
        "numthreads": 50,
    }
    # Override or add custom args
    custom_args = util.get_dict_value(config, "server_args", as_dict=True)
    server_args.update(custom_args)

    server = wsgi.Server(**server_args)

    # Support SSL
    if info["use_ssl"]:
        server.ssl_adapter = BuiltinSSLAdapter(
            info["ssl_cert"], info["ssl_pk"], info["ssl_chain"]
        )
        _logger.info("SSL / HTTPS enabled. Adapter: builtin")

    _logger.info(f"Running {version}")
    _logger.info(f"Serving on {info['url']} ...")

    try:
        server.start()
    except KeyboardInterrupt:
        _logger.warning("Caught Ctrl-C, shutting down...")
    finally:
        server.stop()

    return


def _run_wsgiref(app, config, _server):
    """Run BucketDAV using wsgiref.simple_server (https://docs.python.org/3/library/wsgiref.html)."""
    from wsgiref.simple_server import WSGIRequestHandler, make_server

    version = WSGIRequestHandler.server_version
    version = f"{util.public_bucketdav_info} {version}"
    _logger.info(f"Running {version} ...")

    _logger.warning(
        "WARNING: This single threaded server (wsgiref) is not meant for production."
    )
    if _get_common_info(config)["use_ssl"]:
        _logger.warning("SSL is not supported by wsgiref: serving plain HTTP.")
    WSGIRequestHandler.server_version = version
    httpd = make_server(config["host"], config["port"], app)
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        _logger.warning("Caught Ctrl-C, shutting down...")
    return


SUPPORTED_SERVERS = {
    "cheroot": _run_cheroot,
    "wsgiref": _run_wsgiref,
}


def run(args=None):
    _cli_opts, config = _init_config(args)

    config["logging"]["enable"] = True

    # Fail early on inconsistent SSL options
    _get_common_info(config)

    app = BucketDAVApp(config)

    server = config["server"]
    handler = SUPPORTED_SERVERS.get(server)
    if not handler:
        raise RuntimeError(
            "Unsupported server type {!r} (expected {!r})".format(
                server, "', '".join(SUPPORTED_SERVERS.keys())
            )
        )

    handler(app, config, server)
    return


if __name__ == "__main__":
    run()
