"""
config.py

Runtime settings for the verification pipeline and the ledger.

Loaded from ``configs/verification.yaml`` (same directory resolution as the
template catalog: explicit argument, then DOCVERIFY_CONFIG_DIR, then
<repo root>/configs).  Missing keys fall back to the defaults below, so an
empty file is a valid configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from analyzers.templates import ConfigError, resolve_config_dir
from ledger import Ledger, build_sealer

PathLike = Union[str, Path]
SETTINGS_FILENAME = "verification.yaml"


@dataclass(frozen=True)
class VerificationSettings:
    sealer: str = "proof_of_work"
    difficulty: int = 2
    mining_timeout_s: Optional[float] = 30.0
    max_workers: int = 5
    bulk_limit: int = 50
    default_verifier_id: str = "system"


def _section(cfg: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    raw = cfg.get(name) or {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"'{name}' must be a mapping")
    return raw


def parse_settings(cfg: Mapping[str, Any]) -> VerificationSettings:
    """Build settings from an already-parsed YAML mapping."""
    if not isinstance(cfg, Mapping):
        raise ConfigError("verification config must be a mapping")

    defaults = VerificationSettings()
    ledger_cfg = _section(cfg, "ledger")
    analysis_cfg = _section(cfg, "analysis")
    verifier_cfg = _section(cfg, "verifier")

    try:
        timeout = ledger_cfg.get("mining_timeout_s", defaults.mining_timeout_s)
        settings = VerificationSettings(
            sealer=str(ledger_cfg.get("sealer", defaults.sealer)).strip().lower(),
            difficulty=int(ledger_cfg.get("difficulty", defaults.difficulty)),
            mining_timeout_s=float(timeout) if timeout is not None else None,
            max_workers=int(analysis_cfg.get("max_workers", defaults.max_workers)),
            bulk_limit=int(analysis_cfg.get("bulk_limit", defaults.bulk_limit)),
            default_verifier_id=str(verifier_cfg.get("default_id", defaults.default_verifier_id)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"verification config is malformed: {exc}") from exc

    if settings.sealer not in ("proof_of_work", "trivial"):
        raise ConfigError(f"unsupported ledger.sealer: {settings.sealer!r}")
    if settings.difficulty < 0:
        raise ConfigError("ledger.difficulty must be >= 0")
    if settings.max_workers < 1:
        raise ConfigError("analysis.max_workers must be >= 1")
    if settings.bulk_limit < 1:
        raise ConfigError("analysis.bulk_limit must be >= 1")
    return settings


def load_settings(
    path: Optional[PathLike] = None,
    config_dir: Optional[PathLike] = None,
) -> VerificationSettings:
    cfg_path = Path(path) if path is not None else resolve_config_dir(config_dir) / SETTINGS_FILENAME
    if not cfg_path.is_file():
        raise ConfigError(f"Missing verification config: {cfg_path}")
    with open(cfg_path, encoding="utf-8") as f:
        try:
            cfg = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Could not parse {cfg_path}: {exc}") from exc
    return parse_settings(cfg)


def build_ledger(settings: VerificationSettings) -> Ledger:
    """A fresh ledger sealed the way *settings* asks for."""
    return Ledger(
        sealer=build_sealer(settings.sealer, settings.difficulty),
        mining_timeout=settings.mining_timeout_s,
    )
