"""
settlement_config -- single public entrypoint for settlement settings.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains settings.
    Services never read files or environment variables; they receive the
    ``ContractCodeSettings`` / ``LedgerSettings`` they need from the caller.

Architecture position:
    Configuration.  Sits above ``settlement_kernel`` and below
    ``settlement_services``.  The kernel MUST NEVER import from here.

Audit relevance:
    Every call emits a ``SETTLEMENT_CONFIG_TRACE`` record carrying the
    source path and the checksum of the parsed settings.
"""

from __future__ import annotations

from pathlib import Path

from settlement_config.loader import load_settlement_config
from settlement_config.schema import (
    ContractCodeSettings,
    DatabaseSettings,
    LedgerSettings,
    SettlementConfig,
)
from settlement_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | None = None) -> SettlementConfig:
    """
    Load settings from ``config_path`` (default: the bundled defaults.yaml).

    Raises:
        FileNotFoundError: the file does not exist.
        ValueError: a section or value is invalid.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_settlement_config(path)
    _logger.info(
        "SETTLEMENT_CONFIG_TRACE",
        extra={
            "trace_type": "SETTLEMENT_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": config.checksum,
            "code_prefix": config.codes.prefix,
            "installment_rounding": config.ledger.installment_rounding.value,
        },
    )
    return config


__all__ = [
    "get_active_config",
    "SettlementConfig",
    "DatabaseSettings",
    "ContractCodeSettings",
    "LedgerSettings",
    "DEFAULT_CONFIG_PATH",
]
