from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping, Optional

from .errors import InvalidOptionError
from .logger import Colors, setup_logger
from .source import SourceMode

_logger = setup_logger()

ENV_PREFIX = "NIX_PACKAGE_SEARCH_"


class _Choice(Enum):
    @classmethod
    def values(cls) -> list:
        return [item.value for item in cls]

    @classmethod
    def parse(cls, value: str, option: str):
        normalized = (value or "").strip().lower()
        for item in cls:
            if item.value == normalized:
                return item
        raise InvalidOptionError(option, value, cls.values())


class ColorMode(_Choice):
    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


class Columns(_Choice):
    ALL = "all"
    NONE = "none"
    VERSION = "version"
    DESCRIPTION = "description"


class Color(_Choice):
    BLACK = "black"
    BLUE = "blue"
    GREEN = "green"
    RED = "red"
    CYAN = "cyan"
    MAGENTA = "magenta"
    YELLOW = "yellow"
    WHITE = "white"

    @property
    def ansi(self) -> str:
        return getattr(Colors, self.name)


BOOL_VALUES = {"true": True, "false": False}


def parse_bool(value: str, option: str) -> bool:
    normalized = (value or "").strip().lower()
    if normalized not in BOOL_VALUES:
        raise InvalidOptionError(option, value, BOOL_VALUES)
    return BOOL_VALUES[normalized]


def default_cache_folder() -> Path:
    return Path.home() / ".nix-package-search"


@dataclass(frozen=True)
class Config:
    """
    Settings resolved from NIX_PACKAGE_SEARCH_* environment variables over defaults.
    Built once at start-up; CLI flags are merged on top by QueryOptions.
    """

    cache_folder: Path = field(default_factory=default_cache_folder)
    cache_file: str = "nps.cache"
    experimental_cache_file: str = "nps.experimental.cache"
    experimental: bool = False
    flip: bool = False
    ignore_case: bool = True
    quiet: bool = False
    separate: bool = True
    columns: Columns = Columns.ALL
    color_mode: ColorMode = ColorMode.AUTO
    exact_color: Color = Color.MAGENTA
    direct_color: Color = Color.BLUE
    indirect_color: Color = Color.GREEN

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        env = os.environ if environ is None else environ
        values = {}

        def raw(key: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + key)
            if value is not None:
                _logger.debug("%s%s=%s", ENV_PREFIX, key, value)
            return value

        for key, attr in (
            ("CACHE_FOLDER", "cache_folder"),
            ("CACHE_FILE", "cache_file"),
            ("EXPERIMENTAL_CACHE_FILE", "experimental_cache_file"),
        ):
            value = raw(key)
            if value is None:
                continue
            if not value.strip():
                raise InvalidOptionError(ENV_PREFIX + key, value)
            values[attr] = Path(value).expanduser() if attr == "cache_folder" else value

        for key, attr in (
            ("EXPERIMENTAL", "experimental"),
            ("FLIP", "flip"),
            ("IGNORE_CASE", "ignore_case"),
            ("QUIET", "quiet"),
            ("PRINT_SEPARATOR", "separate"),
        ):
            value = raw(key)
            if value is not None:
                values[attr] = parse_bool(value, ENV_PREFIX + key)

        for key, attr, choice in (
            ("COLUMNS", "columns", Columns),
            ("COLOR_MODE", "color_mode", ColorMode),
            ("EXACT_COLOR", "exact_color", Color),
            ("DIRECT_COLOR", "direct_color", Color),
            ("INDIRECT_COLOR", "indirect_color", Color),
        ):
            value = raw(key)
            if value is not None:
                values[attr] = choice.parse(value, ENV_PREFIX + key)

        return cls(**values)


@dataclass(frozen=True)
class QueryOptions:
    """Everything one invocation needs, fully resolved (CLI > environment > defaults)."""

    search_term: Optional[str] = None
    ignore_case: bool = True
    flip: bool = False
    separate: bool = True
    columns: Columns = Columns.ALL
    color_mode: ColorMode = ColorMode.AUTO
    source_mode: SourceMode = SourceMode.LEGACY
    refresh: bool = False
    quiet: bool = False
    debug: int = 0
    cache_folder: Path = field(default_factory=default_cache_folder)
    cache_file: str = "nps.cache"
    experimental_cache_file: str = "nps.experimental.cache"
    exact_color: Color = Color.MAGENTA
    direct_color: Color = Color.BLUE
    indirect_color: Color = Color.GREEN

    @classmethod
    def from_config(cls, config: Config, **overrides) -> "QueryOptions":
        """Start from the environment config and apply non-None CLI overrides."""
        values = {
            "ignore_case": config.ignore_case,
            "flip": config.flip,
            "separate": config.separate,
            "columns": config.columns,
            "color_mode": config.color_mode,
            "source_mode": SourceMode.EXPERIMENTAL if config.experimental else SourceMode.LEGACY,
            "quiet": config.quiet,
            "cache_folder": config.cache_folder,
            "cache_file": config.cache_file,
            "experimental_cache_file": config.experimental_cache_file,
            "exact_color": config.exact_color,
            "direct_color": config.direct_color,
            "indirect_color": config.indirect_color,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def cache_path(self) -> Path:
        name = self.experimental_cache_file if self.source_mode is SourceMode.EXPERIMENTAL else self.cache_file
        return Path(self.cache_folder) / name

    def bucket_colors(self) -> Iterable[Color]:
        return (self.exact_color, self.direct_color, self.indirect_color)
