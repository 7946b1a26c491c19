"""Configuration management for QR Guardian."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .analyzer.brands import DEFAULT_BRANDS
from .analyzer.heuristic_rules import (
    DEFAULT_SCAM_KEYWORDS,
    DEFAULT_SENSITIVE_KEYWORDS,
    DEFAULT_SUSPICIOUS_TLDS,
)
from .analyzer.shortlinks import DEFAULT_SHORTENERS

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Application configuration loaded from environment."""

    # External reputation lookup (skipped without a key unless the mock is on)
    safe_browsing_api_key: str = ""
    safe_browsing_mock: bool = False
    reputation_timeout: float = 10.0

    # Short link expansion
    shortlink_resolve_enabled: bool = True
    shortlink_timeout: float = 5.0

    # Result cache / history
    cache_ttl_seconds: int = 300
    history_limit: int = 50

    config_dir: Path = field(default_factory=lambda: Path("./config"))

    # Heuristics (override via config/heuristics.yaml)
    brands: dict[str, list[str]] = field(
        default_factory=lambda: {name: list(domains) for name, domains in DEFAULT_BRANDS}
    )
    shorteners: list[str] = field(default_factory=lambda: list(DEFAULT_SHORTENERS))
    sensitive_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_SENSITIVE_KEYWORDS))
    scam_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_SCAM_KEYWORDS))
    suspicious_tlds: list[str] = field(default_factory=lambda: list(DEFAULT_SUSPICIOUS_TLDS))
    scoring_weights: dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        self.config_dir = Path(self.config_dir)


def _coerce_str_list(raw) -> Optional[list[str]]:
    if not isinstance(raw, (list, tuple, set)):
        return None
    items = [str(item).strip().lower() for item in raw if str(item or "").strip()]
    return items or None


def _coerce_tlds(raw) -> Optional[list[str]]:
    items = _coerce_str_list(raw)
    if not items:
        return None
    return [item if item.startswith(".") else f".{item}" for item in items]


def _coerce_brands(raw) -> Optional[dict[str, list[str]]]:
    brands: dict[str, list[str]] = {}
    for entry in raw or []:
        if not isinstance(entry, dict):
            continue
        name = str(entry.get("name") or "").strip().lower()
        if not name:
            continue
        domains = entry.get("official_domains") or []
        if not isinstance(domains, list):
            continue
        brands[name] = [str(d).strip().lower() for d in domains if str(d or "").strip()]
    return brands or None


def _coerce_scoring(raw) -> dict[str, int]:
    weights: dict[str, int] = {}
    if not isinstance(raw, dict):
        return weights
    for key, value in raw.items():
        try:
            weights[str(key)] = int(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric scoring weight %s=%r", key, value)
    return weights


def _load_heuristics(config_dir: Path) -> dict:
    """Load heuristic overrides from config/heuristics.yaml (optional)."""
    path = Path(config_dir or ".") / "heuristics.yaml"
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except Exception as exc:
        logger.warning("Failed to parse heuristics.yaml: %s", exc)
        return {}

    if not isinstance(data, dict):
        return {}

    keywords_cfg = data.get("keywords", {}) if isinstance(data.get("keywords"), dict) else {}
    overrides = {
        "brands": _coerce_brands(data.get("brands")),
        "shorteners": _coerce_str_list(data.get("shorteners")),
        "sensitive_keywords": _coerce_str_list(keywords_cfg.get("sensitive")),
        "scam_keywords": _coerce_str_list(keywords_cfg.get("scam")),
        "suspicious_tlds": _coerce_tlds(data.get("suspicious_tlds")),
        "scoring_weights": _coerce_scoring(data.get("scoring")) or None,
    }
    return {key: value for key, value in overrides.items() if value is not None}


def load_config() -> Config:
    """Load configuration from environment variables."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    heuristics = _load_heuristics(config_dir)

    return Config(
        safe_browsing_api_key=os.getenv("SAFE_BROWSING_API_KEY", ""),
        safe_browsing_mock=os.getenv("SAFE_BROWSING_MOCK", "false").lower() == "true",
        reputation_timeout=float(os.getenv("REPUTATION_TIMEOUT", "10")),
        shortlink_resolve_enabled=os.getenv("SHORTLINK_RESOLVE_ENABLED", "true").lower() == "true",
        shortlink_timeout=float(os.getenv("SHORTLINK_TIMEOUT", "5")),
        cache_ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", "300")),
        history_limit=int(os.getenv("HISTORY_LIMIT", "50")),
        config_dir=config_dir,
        **heuristics,
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = []
    if config.reputation_timeout <= 0:
        errors.append("REPUTATION_TIMEOUT must be positive")
    if config.shortlink_timeout <= 0:
        errors.append("SHORTLINK_TIMEOUT must be positive")
    if config.cache_ttl_seconds <= 0:
        errors.append("CACHE_TTL_SECONDS must be positive")
    if config.history_limit <= 0:
        errors.append("HISTORY_LIMIT must be positive")

    if not (config.safe_browsing_api_key or "").strip():
        if config.safe_browsing_mock:
            logger.info("No SAFE_BROWSING_API_KEY configured; reputation lookups will use mock data")
        else:
            logger.info("No SAFE_BROWSING_API_KEY configured; reputation lookups are disabled")

    return errors
