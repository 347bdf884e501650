"""
Configuration Loader (``settlement_config.loader``).

Responsibility
--------------
Reads a YAML settings file and parses it into the frozen dataclasses of
``settlement_config.schema``.  Runtime callers use
``settlement_config.get_active_config()`` instead of calling this directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError`` from the schema's ``__post_init__``.
* Unknown keys  -> ``ValueError`` naming the section and key.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from settlement_config.schema import (
    ContractCodeSettings,
    DatabaseSettings,
    LedgerSettings,
    SettlementConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load one YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _section(data: dict[str, Any], name: str, cls: type) -> Any:
    raw = data.get(name) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"config section '{name}' must be a mapping")
    allowed = set(cls.__dataclass_fields__)
    unknown = set(raw) - allowed
    if unknown:
        raise ValueError(f"unknown keys in '{name}': {sorted(unknown)}")
    return cls(**raw)


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed settings (sorted keys)."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_settlement_config(data: dict[str, Any]) -> SettlementConfig:
    ledger_raw = dict(data.get("ledger") or {})
    if "balance_tolerance" in ledger_raw:
        ledger_raw["balance_tolerance"] = Decimal(str(ledger_raw["balance_tolerance"]))

    unknown = set(data) - {"database", "codes", "ledger"}
    if unknown:
        raise ValueError(f"unknown config sections: {sorted(unknown)}")

    return SettlementConfig(
        database=_section(data, "database", DatabaseSettings),
        codes=_section(data, "codes", ContractCodeSettings),
        ledger=_section({"ledger": ledger_raw}, "ledger", LedgerSettings),
        checksum=compute_checksum(data),
    )


def load_settlement_config(path: Path) -> SettlementConfig:
    return parse_settlement_config(load_yaml_file(path))
