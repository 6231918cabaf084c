"""
Configuration Loader (``gl_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``gl_config.schema`` dataclasses.  The single public entry point for
runtime config is ``gl_config.get_active_config()``.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Every parsed object is a frozen dataclass from ``schema.py``.
* Amounts are parsed from their string form into ``Decimal``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from gl_config.schema import EngineConfig, PostingLimits, RolePolicy, SoDPolicy


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
        raise ValueError(f"{path}: top-level YAML must be a mapping")
    return data


def parse_decimal(value: Any, field: str) -> Decimal:
    """Parse a configuration amount (quote it in YAML to keep it exact)."""
    if isinstance(value, bool):
        raise ValueError(f"{field}: expected a number, got {value!r}")
    try:
        parsed = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{field}: expected a number, got {value!r}") from exc
    if not parsed.is_finite():
        raise ValueError(f"{field}: expected a finite number, got {value!r}")
    return parsed


def _str_tuple(value: Any, field: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"{field}: expected a list of strings")
    return tuple(str(v) for v in value)


def parse_role_policy(name: str, data: dict[str, Any] | None) -> RolePolicy:
    data = data or {}
    threshold = data.get("approval_threshold")
    return RolePolicy(
        role=name.strip().lower(),
        allow=_str_tuple(data.get("allow"), f"sod.roles.{name}.allow"),
        deny=_str_tuple(data.get("deny"), f"sod.roles.{name}.deny"),
        approval_threshold=(
            parse_decimal(threshold, f"sod.roles.{name}.approval_threshold")
            if threshold is not None
            else None
        ),
        approval_required=_str_tuple(
            data.get("approval_required"), f"sod.roles.{name}.approval_required"
        ),
    )


def parse_sod_policy(data: dict[str, Any]) -> SoDPolicy:
    roles = data.get("roles") or {}
    if not isinstance(roles, dict):
        raise ValueError("sod.roles must be a mapping of role name -> policy")
    parsed = {
        policy.role: policy
        for policy in (parse_role_policy(name, body) for name, body in roles.items())
    }
    return SoDPolicy(
        roles=parsed,
        approver_roles=_str_tuple(data.get("approver_roles"), "sod.approver_roles"),
    )


def parse_posting_limits(data: dict[str, Any] | None) -> PostingLimits:
    data = data or {}
    defaults = PostingLimits()
    limits = PostingLimits(
        max_lines=int(data.get("max_lines", defaults.max_lines)),
        min_amount=parse_decimal(data.get("min_amount", defaults.min_amount), "posting.min_amount"),
        max_amount=parse_decimal(data.get("max_amount", defaults.max_amount), "posting.max_amount"),
        balance_tolerance=parse_decimal(
            data.get("balance_tolerance", defaults.balance_tolerance),
            "posting.balance_tolerance",
        ),
    )
    if limits.max_lines < 1:
        raise ValueError("posting.max_lines must be at least 1")
    if limits.min_amount > limits.max_amount:
        raise ValueError("posting.min_amount must not exceed posting.max_amount")
    return limits


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """
    Build an EngineConfig from a parsed YAML document.

    Raises:
        KeyError: if config_id, base_currency or sod is missing.
        ValueError: on malformed values.
    """
    base_currency = str(data["base_currency"]).strip().upper()
    if len(base_currency) != 3 or not base_currency.isalpha():
        raise ValueError(f"base_currency must be a 3-letter code, got {base_currency!r}")
    return EngineConfig(
        config_id=str(data["config_id"]),
        version=int(data.get("version", 1)),
        base_currency=base_currency,
        posting=parse_posting_limits(data.get("posting")),
        sod=parse_sod_policy(data["sod"]),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization (sorted keys)."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
