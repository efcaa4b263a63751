"""
billing_config -- single public entrypoint for billing configuration.

``get_active_policy()`` is the only way runtime code obtains the
``BillingPolicy``. It reads the file named by the ``BILLING_CONFIG_PATH``
environment variable, or ``defaults.yaml`` beside this module, parses it
once and caches the result.

Failure modes:
    - ``FileNotFoundError`` -- BILLING_CONFIG_PATH names a missing file.
    - ``ValueError`` -- unknown keys or invalid values in the YAML.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path

from billing_config.loader import load_policy
from billing_config.schema import BillingPolicy
from billing_kernel.logging_config import get_logger

__all__ = [
    "BillingPolicy",
    "CONFIG_PATH_ENV",
    "get_active_policy",
    "load_policy",
    "reset_active_policy",
]

logger = get_logger("config")

CONFIG_PATH_ENV = "BILLING_CONFIG_PATH"
_DEFAULT_POLICY_FILE = Path(__file__).parent / "defaults.yaml"

_active: BillingPolicy | None = None
_lock = threading.Lock()


def get_active_policy() -> BillingPolicy:
    """Return the cached BillingPolicy, loading it on first use."""
    global _active
    with _lock:
        if _active is None:
            path = Path(os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_POLICY_FILE)
            _active = load_policy(path)
            logger.info("billing_config_loaded", extra={
                "path": str(path),
                "currency": _active.currency,
                "decimal_places": _active.decimal_places,
                "rounding": _active.rounding,
            })
        return _active


def reset_active_policy() -> None:
    """Drop the cached policy so the next call reloads. FOR TESTING ONLY."""
    global _active
    with _lock:
        _active = None
