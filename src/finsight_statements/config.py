# FinSight Statements - Financial statement normalization & reporting engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for FinSight Statements.

This module is responsible for:
- loading the application configuration from a TOML file,
- validating enumerated settings (presets, compare modes, display modes),
- exposing typed dataclasses used by the rest of the application.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .multi_periods import MATCH_MODES
from .periods import COMPARE_MODES, PRESETS

DEFAULT_CONFIG_FILE = "finsight_statements.toml"
DISPLAY_MODES: tuple[str, ...] = ("table", "csv", "both")
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ReportingConfig:
    """Reporting options: currency, default period and comparison settings."""

    currency: str = "ZAR"
    default_preset: str = "year"
    compare_mode: str = "none"
    match_on: str = "label"


@dataclass(frozen=True)
class ProjectionConfig:
    """Default growth rates (%/year) and horizons of the projection engine."""

    revenue_growth: float = 5.0
    cost_growth: float = 3.0
    expense_growth: float = 2.0
    horizon_months: int = 12
    horizon_years: int = 5


@dataclass(frozen=True)
class DisplayConfig:
    """Rendering options: console tables, CSV files or both."""

    mode: str = "table"
    output_dir: Path = Path("data/output")


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "WARNING"


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for FinSight Statements.

    This aggregates:
    - reporting options (currency, default preset, comparison),
    - projection defaults (growth rates, horizons),
    - display options (mode and CSV output directory),
    - logging options.
    """

    reporting: ReportingConfig = field(default_factory=ReportingConfig)
    projections: ProjectionConfig = field(default_factory=ProjectionConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _choice(value: Any, allowed: tuple[str, ...], setting: str) -> str:
    text = str(value)
    if text not in allowed:
        raise ValueError(
            f"Invalid value {text!r} for {setting}. Expected one of: "
            + ", ".join(allowed)
        )
    return text


def _number(value: Any, setting: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value for {setting}: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid numeric value for {setting}: {value!r}") from exc


def _growth_rate(value: Any, setting: str) -> float:
    rate = _number(value, setting)
    if not math.isfinite(rate) or rate <= -100:
        raise ValueError(f"{setting} must be a percentage above -100, got {value!r}.")
    return rate


def _positive_int(value: Any, setting: str) -> int:
    number = _number(value, setting)
    if number != int(number) or number < 1:
        raise ValueError(f"{setting} must be a positive integer, got {value!r}.")
    return int(number)


def parse_app_config(raw: Mapping[str, Any], base_dir: Path) -> AppConfig:
    """
    Build an AppConfig from parsed TOML data.

    Missing sections and keys fall back to defaults. Relative paths are
    resolved against ``base_dir``.

    Raises:
        ValueError: if an enumerated or numeric setting is invalid.
    """
    # 1) Reporting section
    reporting_section = _section(raw, "reporting")
    defaults = ReportingConfig()
    reporting = ReportingConfig(
        currency=str(reporting_section.get("currency") or defaults.currency),
        default_preset=_choice(
            reporting_section.get("default_preset", defaults.default_preset),
            PRESETS,
            "reporting.default_preset",
        ),
        compare_mode=_choice(
            reporting_section.get("compare_mode", defaults.compare_mode),
            COMPARE_MODES,
            "reporting.compare_mode",
        ),
        match_on=_choice(
            reporting_section.get("match_on", defaults.match_on),
            MATCH_MODES,
            "reporting.match_on",
        ),
    )

    # 2) Projections section
    proj_section = _section(raw, "projections")
    proj_defaults = ProjectionConfig()
    projections = ProjectionConfig(
        revenue_growth=_growth_rate(
            proj_section.get("revenue_growth", proj_defaults.revenue_growth),
            "projections.revenue_growth",
        ),
        cost_growth=_growth_rate(
            proj_section.get("cost_growth", proj_defaults.cost_growth),
            "projections.cost_growth",
        ),
        expense_growth=_growth_rate(
            proj_section.get("expense_growth", proj_defaults.expense_growth),
            "projections.expense_growth",
        ),
        horizon_months=_positive_int(
            proj_section.get("horizon_months", proj_defaults.horizon_months),
            "projections.horizon_months",
        ),
        horizon_years=_positive_int(
            proj_section.get("horizon_years", proj_defaults.horizon_years),
            "projections.horizon_years",
        ),
    )

    # 3) Display section
    display_section = _section(raw, "display")
    output_dir_raw = display_section.get("output_dir") or "data/output"
    display = DisplayConfig(
        mode=_choice(
            display_section.get("mode", "table"), DISPLAY_MODES, "display.mode"
        ),
        output_dir=(base_dir / str(output_dir_raw)).resolve(),
    )

    # 4) Logging section
    logging_section = _section(raw, "logging")
    level = str(logging_section.get("level", "WARNING")).upper()
    logging_config = LoggingConfig(level=_choice(level, LOG_LEVELS, "logging.level"))

    return AppConfig(
        reporting=reporting,
        projections=projections,
        display=display,
        logging=logging_config,
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the FinSight Statements configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [reporting]
        Presentation currency, default period preset, compare mode and
        row matching mode for multi-period views.

    [projections]
        Default growth rates (%/year) and projection horizons.

    [display]
        Display mode (table, csv, both) and CSV output directory.

    [logging]
        Log level of the command-line tool.

    All sections are optional.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. If omitted,
        ``finsight_statements.toml`` in the current directory is used when it
        exists, and built-in defaults otherwise.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.

    Raises
    ------
    FileNotFoundError
        If an explicitly given config file does not exist.
    ValueError
        If the file cannot be parsed or holds invalid values.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
        if not config_file.is_file():
            return parse_app_config({}, Path.cwd())
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    return parse_app_config(raw, config_file.parent)
