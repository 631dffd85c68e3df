# cli.py
import argparse
import re
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from . import __version__
from . import operations
from .config import Color, ColorMode, Columns, Config, QueryOptions, parse_bool
from .errors import ExitCode, InvalidOptionError, MissingSearchTermError, NpsError
from .logger import MAX_VERBOSITY, set_verbosity, setup_logger
from .source import SourceMode

_logger = setup_logger()

DESCRIPTION = """\
Find SEARCH_TERM in available nix packages and sort results by relevance

List up to three columns, the latter two being optional:
PACKAGE_NAME  [PACKAGE_VERSION]  [PACKAGE_DESCRIPTION]

Matches are sorted by type. Show 'exact' matches first, then 'direct' matches, and finally 'indirect' matches.

  exact     SEARCH_TERM (in PACKAGE_NAME column)
  direct    SEARCH_TERMbar (in PACKAGE_NAME column)
  indirect  fooSEARCH_TERMbar (in any column)
"""

ENV_VAR_OPTIONS = """\
CONFIGURATION

`nps` can be configured with environment variables. You can set these in
the configuration file of your shell, e.g. .bashrc/.zshrc

NIX_PACKAGE_SEARCH_EXPERIMENTAL
  Use the experimental 'nix search' command.
  It pulls information from the nix flake registries instead of nix channels.
  This is useful if no channels are in use, or channels are not updated
  regularly.
    [default: {experimental}]
    [possible values: true, false]

NIX_PACKAGE_SEARCH_FLIP
  Flip the order of matches? By default most relevant matches appear on top.
  Flipping shows most relevant matches below, which is easier to read with
  long output.
    [default: {flip}]
    [possible values: true, false]

NIX_PACKAGE_SEARCH_CACHE_FOLDER
  In which folder is the cache located?
    [default: {cache_folder}]
    [possible values: path]

NIX_PACKAGE_SEARCH_CACHE_FILE
  Name of the cache file
    [default: {cache_file}]
    [possible values: filename]

NIX_PACKAGE_SEARCH_EXPERIMENTAL_CACHE_FILE
  Name of the experimental cache file
    [default: {experimental_cache_file}]
    [possible values: filename]

NIX_PACKAGE_SEARCH_COLUMNS
  Choose columns to show: PACKAGE_NAME plus any of PACKAGE_VERSION or
  PACKAGE_DESCRIPTION
    [default: {columns}]
    [possible values: {columns_values}]

NIX_PACKAGE_SEARCH_EXACT_COLOR
  Color of EXACT matches, match SEARCH_TERM in PACKAGE_NAME
    [default: {exact_color}]
    [possible values: {color_values}]

NIX_PACKAGE_SEARCH_DIRECT_COLOR
  Color of DIRECT matches, match SEARCH_TERMbar in PACKAGE_NAME
    [default: {direct_color}]
    [possible values: {color_values}]

NIX_PACKAGE_SEARCH_INDIRECT_COLOR
  Color of INDIRECT matches, match fooSEARCH_TERMbar in any column
    [default: {indirect_color}]
    [possible values: {color_values}]

NIX_PACKAGE_SEARCH_COLOR_MODE
  Show search matches in color
  auto: Only show color if stdout is in terminal, suppress if e.g. piped
    [default: {color_mode}]
    [possible values: {color_mode_values}]

NIX_PACKAGE_SEARCH_PRINT_SEPARATOR
  Separate matches with a newline?
    [default: {separate}]
    [possible values: true, false]

NIX_PACKAGE_SEARCH_IGNORE_CASE
  Search ignore capitalization for the search?
    [default: {ignore_case}]
    [possible values: true, false]

NIX_PACKAGE_SEARCH_QUIET
  Suppress informational messages such as the refresh summary
    [default: {quiet}]
    [possible values: true, false]
"""

# Options whose value is optional: "--flip" means "--flip=true".
# A value is only taken in the "--opt=value" / "-o=value" form, never from the next word.
OPTIONAL_VALUE_OPTIONS = {
    "color": (("-c", "--color", "--colour"), "auto"),
    "columns": (("-C", "--columns"), "all"),
    "experimental": (("-e", "--experimental"), "true"),
    "flip": (("-f", "--flip"), "true"),
    "ignore_case": (("-i", "--ignore-case"), "true"),
    "quiet": (("-q", "--quiet"), "true"),
    "separate": (("-s", "--separate"), "true"),
}

# Every single-letter flag; only words made of these letters are split up.
SHORT_FLAGS = set("cCdefiqrsVh")
_COMBINED_SHORT_RE = re.compile(r"^-(?P<letters>[A-Za-z]{2,})(?P<value>=.*)?$")


def option_help_text(config: Optional[Config] = None) -> str:
    config = config or Config()
    return ENV_VAR_OPTIONS.format(
        experimental=str(config.experimental).lower(),
        flip=str(config.flip).lower(),
        cache_folder=config.cache_folder,
        cache_file=config.cache_file,
        experimental_cache_file=config.experimental_cache_file,
        columns=config.columns.value,
        columns_values=", ".join(Columns.values()),
        exact_color=config.exact_color.value,
        direct_color=config.direct_color.value,
        indirect_color=config.indirect_color.value,
        color_values=", ".join(Color.values()),
        color_mode=config.color_mode.value,
        color_mode_values=", ".join(ColorMode.values()),
        separate=str(config.separate).lower(),
        ignore_case=str(config.ignore_case).lower(),
        quiet=str(config.quiet).lower(),
    )


def expand_short_flags(arg: str) -> List[str]:
    """Split "-di" into "-d", "-i"; "-df=false" into "-d", "-f=false"."""
    m = _COMBINED_SHORT_RE.match(arg)
    if not m or not set(m.group("letters")) <= SHORT_FLAGS:
        return [arg]
    letters = m.group("letters")
    expanded = [f"-{c}" for c in letters]
    expanded[-1] += m.group("value") or ""
    return expanded


def normalize_argv(argv: Sequence[str]) -> List[str]:
    """Rewrite optional-value flags to their "--long=value" form."""
    lookup = {}
    for flags, default in OPTIONAL_VALUE_OPTIONS.values():
        canonical = next(f for f in flags if f.startswith("--"))
        for f in flags:
            lookup[f] = (canonical, default)

    argv = list(argv)
    out: List[str] = []
    for i, raw in enumerate(argv):
        if raw == "--":
            out.extend(argv[i:])
            break
        for arg in expand_short_flags(raw):
            flag, sep, value = arg.partition("=")
            if flag in lookup:
                canonical, default = lookup[flag]
                out.append(f"{canonical}={value if sep else default}")
            else:
                out.append(arg)
    return out


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nps",
        description=DESCRIPTION,
        epilog="Run 'nps --show-config-options' to list the environment variable configuration.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )

    parser.add_argument("-c", "--color", "--colour", metavar="WHEN", help="Highlight search matches in color (auto, always, never)")
    parser.add_argument("-C", "--columns", metavar="COLUMNS", help="Choose columns to show (all, none, version, description)")
    parser.add_argument(
        "-d", "--debug", action="count", default=0, help="Turn debugging information on. Use up to four times for increased verbosity"
    )
    parser.add_argument("-e", "--experimental", metavar="BOOL", help="Use experimental flakes")
    parser.add_argument("-f", "--flip", metavar="BOOL", help="Flip the order of matches")
    parser.add_argument("-i", "--ignore-case", metavar="BOOL", help="Ignore case")
    parser.add_argument("-q", "--quiet", metavar="BOOL", help="Suppress informational messages")
    parser.add_argument("-r", "--refresh", action="store_true", help="Refresh package cache (and exit without SEARCH_TERM)")
    parser.add_argument("-s", "--separate", metavar="BOOL", help="Separate match types with a newline")
    parser.add_argument(
        "--show-config-options", action="store_true", help="Show environment variable configuration options and exit"
    )
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "search_term", nargs="?", metavar="SEARCH_TERM", help="Search for any SEARCH_TERM in package names, description or versions"
    )

    # Hidden, mostly set via environment variables
    parser.add_argument("--cache-folder", help=argparse.SUPPRESS)
    parser.add_argument("--cache-file", help=argparse.SUPPRESS)
    parser.add_argument("--experimental-cache-file", help=argparse.SUPPRESS)
    parser.add_argument("--exact-color", help=argparse.SUPPRESS)
    parser.add_argument("--direct-color", help=argparse.SUPPRESS)
    parser.add_argument("--indirect-color", help=argparse.SUPPRESS)
    return parser


def _optional(value: Optional[str], parse, option: str):
    return None if value is None else parse(value, option)


def _non_empty(value: str, option: str) -> str:
    if not value.strip():
        raise InvalidOptionError(option, value)
    return value


def options_from_args(args: argparse.Namespace, config: Config) -> QueryOptions:
    """Merge parsed CLI arguments over the environment config."""
    experimental = _optional(args.experimental, parse_bool, "--experimental")
    source_mode = None
    if experimental is not None:
        source_mode = SourceMode.EXPERIMENTAL if experimental else SourceMode.LEGACY

    cache_folder = _optional(args.cache_folder, _non_empty, "--cache-folder")

    return QueryOptions.from_config(
        config,
        search_term=args.search_term,
        refresh=args.refresh,
        debug=args.debug,
        ignore_case=_optional(args.ignore_case, parse_bool, "--ignore-case"),
        flip=_optional(args.flip, parse_bool, "--flip"),
        separate=_optional(args.separate, parse_bool, "--separate"),
        quiet=_optional(args.quiet, parse_bool, "--quiet"),
        columns=_optional(args.columns, Columns.parse, "--columns"),
        color_mode=_optional(args.color, ColorMode.parse, "--color"),
        source_mode=source_mode,
        cache_folder=Path(cache_folder).expanduser() if cache_folder else None,
        cache_file=_optional(args.cache_file, _non_empty, "--cache-file"),
        experimental_cache_file=_optional(args.experimental_cache_file, _non_empty, "--experimental-cache-file"),
        exact_color=_optional(args.exact_color, Color.parse, "--exact-color"),
        direct_color=_optional(args.direct_color, Color.parse, "--direct-color"),
        indirect_color=_optional(args.indirect_color, Color.parse, "--indirect-color"),
    )


def execute(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(normalize_argv(sys.argv[1:] if argv is None else argv))

    set_verbosity(args.debug)
    if args.debug > MAX_VERBOSITY:
        _logger.error("Max log level is %d, e.g. -%s", MAX_VERBOSITY, "d" * MAX_VERBOSITY)
        return ExitCode.INVALID_OPTION

    try:
        config = Config.from_env()
        if args.show_config_options:
            print(option_help_text(config))
            return ExitCode.SUCCESS

        options = options_from_args(args, config)
        if not options.search_term and not options.refresh:
            raise MissingSearchTermError("the following required arguments were not provided: <SEARCH_TERM>")
    except NpsError as e:
        parser.print_usage(sys.stderr)
        _logger.error("error: %s", e)
        return e.exit_code

    _logger.debug("Options: %s", options)
    return operations.run(options)


def main(argv: Optional[Sequence[str]] = None) -> None:
    try:
        code = execute(argv)
    except KeyboardInterrupt:
        _logger.warning("Terminated by user (Ctrl+C). Exiting...")
        code = ExitCode.INTERRUPTED
    except Exception as e:
        _logger.error(f"Unexpected error: {e}")
        _logger.debug("Traceback:", exc_info=True)
        code = ExitCode.INTERNAL
    sys.exit(int(code))


if __name__ == "__main__":
    main()
