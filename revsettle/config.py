"""
YAML configuration for a revsettle deployment.

    fees:
      base_fee: 1000000
      enabled: true
      collector: <hex address>        # optional, defaults to the admin
    tiers:
      0: 0
      1: 1000
      2: 2500
    volume_brackets:
      - {threshold: 10, discount_bps: 500}
      - {threshold: 50, discount_bps: 1000}
    journal:
      path: .revsettle/journal.jsonl  # optional
    logging:
      level: INFO

Loading validates the same ranges the registries enforce at runtime,
so a config that loads cleanly also bootstraps cleanly.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from revsettle.attestation.fees import build_brackets, compute_fee
from revsettle.core.exceptions import ConfigError, ValidationError
from revsettle.core.models import VolumeBracket
from revsettle.core.validation import (
    require_address,
    require_amount,
    require_bps,
    require_u32,
)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class SettlementConfig:
    base_fee:        int = 0
    fees_enabled:    bool = False
    collector:       Optional[str] = None
    tiers:           Dict[int, int] = field(default_factory=dict)
    volume_brackets: List[VolumeBracket] = field(default_factory=list)
    journal_path:    Optional[Path] = None
    log_level:       str = "WARNING"

    @classmethod
    def from_yaml(cls, path: Path) -> "SettlementConfig":
        """Load configuration from a YAML file."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read config file: {e}", {"path": str(path)}) from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}", {"path": str(path)}) from e
        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SettlementConfig":
        if not isinstance(data, dict):
            raise ConfigError("Config root must be a mapping")
        try:
            return cls._parse(data)
        except ValidationError as e:
            if isinstance(e, ConfigError):
                raise
            raise ConfigError(e.message, e.details) from e

    @classmethod
    def _parse(cls, data: Dict[str, Any]) -> "SettlementConfig":
        fees = data.get("fees") or {}
        if not isinstance(fees, dict):
            raise ConfigError("'fees' must be a mapping")
        base_fee = require_amount("fees.base_fee", fees.get("base_fee", 0))
        enabled = fees.get("enabled", False)
        if not isinstance(enabled, bool):
            raise ConfigError("'fees.enabled' must be true or false")
        collector = fees.get("collector")
        if collector is not None:
            require_address("fees.collector", collector)

        raw_tiers = data.get("tiers") or {}
        if not isinstance(raw_tiers, dict):
            raise ConfigError("'tiers' must be a mapping of tier → discount_bps")
        tiers = {}
        for tier, bps in raw_tiers.items():
            if isinstance(tier, bool) or not isinstance(tier, (int, str)):
                raise ConfigError("Tier level must be an integer", {"tier": repr(tier)})
            try:
                level = int(tier)
            except ValueError as e:
                raise ConfigError("Tier level must be an integer", {"tier": tier}) from e
            tiers[require_u32("tier", level)] = require_bps("discount_bps", bps)

        raw_brackets = data.get("volume_brackets") or []
        if not isinstance(raw_brackets, list):
            raise ConfigError("'volume_brackets' must be a list")
        try:
            thresholds = [b["threshold"] for b in raw_brackets]
            discounts = [b["discount_bps"] for b in raw_brackets]
        except (KeyError, TypeError) as e:
            raise ConfigError(
                "each volume bracket needs 'threshold' and 'discount_bps'"
            ) from e
        brackets = build_brackets(thresholds, discounts)

        journal = data.get("journal") or {}
        if not isinstance(journal, dict):
            raise ConfigError("'journal' must be a mapping")
        journal_path = journal.get("path")
        if journal_path is not None and not isinstance(journal_path, str):
            raise ConfigError("'journal.path' must be a string", {"path": repr(journal_path)})

        logging_section = data.get("logging") or {}
        if not isinstance(logging_section, dict):
            raise ConfigError("'logging' must be a mapping")
        log_level = str(logging_section.get("level", "WARNING")).upper()
        if log_level not in _LOG_LEVELS:
            raise ConfigError("Unknown logging level", {"level": log_level})

        return cls(
            base_fee=        base_fee,
            fees_enabled=    enabled,
            collector=       collector,
            tiers=           tiers,
            volume_brackets= brackets,
            journal_path=    Path(journal_path) if journal_path else None,
            log_level=       log_level,
        )

    def quote(self, tier: int = 0, volume: int = 0) -> int:
        """Fee for a business in `tier` with `volume` prior attestations."""
        if not self.fees_enabled:
            return 0
        return compute_fee(
            base_fee=     self.base_fee,
            tier_bps=     self.tiers.get(tier, 0),
            volume_count= volume,
            brackets=     self.volume_brackets,
        )

    @property
    def level(self) -> int:
        return getattr(logging, self.log_level)
