# Fetch all managed devices from XMC and write their VLAN/port assignments.

import argparse
import logging
import sys
from typing import List, Optional

import yaml

from . import __version__
from .config import ENV_FILE_NAME, Settings, load_env_files
from .discovery import run_discovery
from .exceptions import CompressionError, FatalPipelineError, FatalSetupError, WriterError
from .writers import write_results

logger = logging.getLogger(__name__)

TOOL_ID = f"VlanLister/{__version__}"

DESCRIPTION = """\
Fetches the list of managed devices from XMC, optionally triggers a rediscover
for every active device and then writes all VLANs and VLAN to port
associations to one or more outfiles."""

EPILOG = f"""\
At least one outfile is required. File types are determined by the prefix
FILETYPE: or the suffix .FILETYPE; prefixes take priority over suffixes.
Valid FILETYPEs are:
  csv     -->  writes CSV data to the given file
  json    -->  writes JSON data to the given file
  stdout  -->  prints CSV data to stdout (e.g. stdout:-)
  xlsx    -->  writes XLSX data to the given file
The additional suffix .gz triggers gzip compression of file outputs.

Options can also be set via environment variables (XMCHOST, XMCPORT, XMCPATH,
XMCTIMEOUT, XMCNOHTTPS, XMCINSECUREHTTPS, XMCUSERID, XMCSECRET, XMCBASICAUTH,
XMCNOREFRESH, XMCREFRESHINTERVAL, XMCREFRESHWAIT, XMCINCLUDEDOWN, XMCNOCOLOR,
XMCCOMPRESSOUTPUT), which may be kept in a file called {ENV_FILE_NAME} in the
current directory or in your home directory."""


def build_parser(s: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vlanlister",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--host", default=s.host, help="XMC hostname / IP")
    parser.add_argument("--port", type=int, default=s.port, help="HTTP port where XMC is listening (default: %(default)s)")
    parser.add_argument("--path", default=s.path, help="Path where XMC is reachable")
    parser.add_argument("--timeout", type=int, default=s.timeout, help="Timeout for HTTP(S) connections (default: %(default)s)")
    parser.add_argument("--nohttps", action="store_true", default=s.no_https, help="Use HTTP instead of HTTPS")
    parser.add_argument("--insecurehttps", action="store_true", default=s.insecure_https, help="Do not validate HTTPS certificates")
    parser.add_argument("-u", "--userid", default=s.userid, help="Client ID (OAuth) or username (Basic Auth)")
    parser.add_argument("-s", "--secret", default=s.secret, help="Client secret (OAuth) or password (Basic Auth)")
    parser.add_argument("--basicauth", action="store_true", default=s.basic_auth, help="Use HTTP Basic Auth instead of OAuth")
    parser.add_argument("--norefresh", action="store_true", default=s.no_refresh, help="Do not refresh (rediscover) devices")
    parser.add_argument("--refreshinterval", type=int, default=s.refresh_interval,
                        help="Seconds to wait between triggering each refresh (default: %(default)s)")
    parser.add_argument("--refreshwait", type=int, default=s.refresh_wait,
                        help="Minutes to wait after refreshing devices (default: %(default)s)")
    parser.add_argument("--includedown", action="store_true", default=s.include_down, help="Include inactive devices in result")
    parser.add_argument("--nocolor", action="store_true", default=s.no_color, help="Do not colorize output (XLSX)")
    parser.add_argument("--compress-output", action="store_true", default=s.compress_output, help="Compress output using gzip")
    parser.add_argument("--outfile", action="append", default=None, help="File to write data to (repeatable)")
    parser.add_argument("--settings", default=None, help="YAML settings file (default: settings.yaml if present)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=TOOL_ID)
    return parser


def _pre_parse_settings_path(argv: Optional[List[str]]) -> Optional[str]:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--settings", default=None)
    known, _ = pre.parse_known_args(argv)
    return known.settings


def _apply_args(s: Settings, args: argparse.Namespace) -> None:
    s.host = args.host
    s.port = args.port
    s.path = args.path
    s.timeout = args.timeout
    s.no_https = args.nohttps
    s.insecure_https = args.insecurehttps
    s.userid = args.userid
    s.secret = args.secret
    s.basic_auth = args.basicauth
    s.no_refresh = args.norefresh
    s.refresh_interval = args.refreshinterval
    s.refresh_wait = args.refreshwait
    s.include_down = args.includedown
    s.no_color = args.nocolor
    s.compress_output = args.compress_output
    if args.outfile:
        s.outfiles = args.outfile


def _check_setup(s: Settings) -> None:
    if not s.host:
        raise FatalSetupError("host is required.")
    if not s.outfiles:
        raise FatalSetupError("outfile is required.")


def write_all(s: Settings, results) -> int:
    # Every outfile is attempted; returns the number of outfiles that failed.
    options = s.options()
    failed = 0
    for outfile in s.outfiles:
        try:
            rows = write_results(outfile, results, options)
        except CompressionError as e:
            logger.error("[!] %d rows written to <%s>, but %s", e.rows_written, outfile, e)
            failed += 1
        except WriterError as e:
            logger.error("[!] %s", e)
            failed += 1
        else:
            logger.info("[+] %d rows written to <%s>.", rows, outfile)
    return failed


def main(argv: Optional[List[str]] = None) -> int:
    load_env_files()
    try:
        s = Settings(_pre_parse_settings_path(argv))
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Could not load settings: {e}", file=sys.stderr)
        return 1

    args = build_parser(s).parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    _apply_args(s, args)
    try:
        _check_setup(s)
    except FatalSetupError as e:
        print(f"{TOOL_ID}: {e}", file=sys.stderr)
        return 1

    client = s.client()
    try:
        results = run_discovery(client, s.options())
    except FatalPipelineError as e:
        logger.error("[x] %s", e)
        return 1

    write_all(s, results)
    return 0
