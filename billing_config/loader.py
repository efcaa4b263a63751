"""
Configuration Loader (``billing_config.loader``).

Loads a YAML policy file and parses it into a ``BillingPolicy``. Runtime
code goes through ``billing_config.get_active_policy()``; this module is
the parsing step behind it and is used directly by tests.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from billing_config.schema import BillingPolicy

_POLICY_KEYS = frozenset(f.name for f in fields(BillingPolicy))


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(data).__name__}")
    return data


def parse_policy(data: dict[str, Any]) -> BillingPolicy:
    """
    Parse a ``BillingPolicy`` from a dict. Absent keys take schema defaults.

    Raises:
        ValueError: on unknown keys or invalid values.
    """
    unknown = set(data) - _POLICY_KEYS
    if unknown:
        raise ValueError(f"Unknown billing policy keys: {', '.join(sorted(unknown))}")
    return BillingPolicy(**data)


def load_policy(path: Path) -> BillingPolicy:
    """Load and parse a policy file."""
    return parse_policy(load_yaml_file(Path(path)))
