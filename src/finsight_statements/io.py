# FinSight Statements - Financial statement normalization & reporting engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for FinSight Statements.

This module reads the JSON documents the command-line tool works from:

1) Statement payloads
   ------------------
   The raw responses of the ledger API, saved to disk, one file per
   statement and period:

   - income statement: ``[{section, amount, accounts: [{name, amount}]}]``
     or ``{"sections": [...]}``,
   - balance sheet: ``{assets, liabilities, equity, control, ...}``,
   - cash flow: ``{operating, investing, financing}`` or
     ``{"sections": {...}}``,
   - trial balance: ``[{code, name, balance_debit, balance_credit}]`` or
     ``{"items": [...]}``.

   The content is passed to the statement builders untouched; they are
   responsible for tolerating malformed data.

2) Projection baselines and overrides
   ----------------------------------
   - baseline: ``{sales, costOfGoods, totalExpenses}``,
   - overrides: ``{"12-months-3": {"sales": 2000, "costs": "+5%"}}``.

Files that do not exist raise FileNotFoundError; files that are not valid
JSON raise ValueError.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Union

from .projections import OverrideMap

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def read_payload(path: PathLike) -> Any:
    """
    Read a JSON document from disk.

    Parameters
    ----------
    path:
        Path to the JSON file.

    Returns
    -------
    Any
        The decoded JSON value (object, array, ...).

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file is not valid JSON.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Payload file not found: {file_path}")

    try:
        payload = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {file_path}: {exc}") from exc

    logger.debug("Loaded payload from %s", file_path)
    return payload


def read_overrides(path: PathLike) -> OverrideMap:
    """
    Read a projection override map from a JSON file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file is not valid JSON, is not an object of objects, or holds
        an invalid override.
    """
    raw = read_payload(path)
    if not isinstance(raw, dict) or not all(isinstance(v, dict) for v in raw.values()):
        raise ValueError(
            f"Invalid override file {path}: expected an object mapping period "
            "keys to {metric: value} objects."
        )
    return OverrideMap.from_dict(raw)


def write_overrides(overrides: OverrideMap, path: PathLike) -> Path:
    """Write an override map to a JSON file and return its path."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(json.dumps(overrides.to_dict(), indent=2), encoding="utf-8")
    return file_path
