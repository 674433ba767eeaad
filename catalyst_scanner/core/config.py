"""Configuration module for loading scanner settings and environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_FEED_URL = "https://www.globenewswire.com/RssFeed"

DEFAULT_KEYWORDS = [
    "approval", "approved", "fda", "clearance", "acquisition", "acquire",
    "merger", "partnership", "agreement", "contract", "award", "positive",
    "results", "breakthrough", "surge", "record", "launch", "patent",
    "milestone", "uplisting", "buyback",
]

# Major-market names plus the exchange codes reported by FMP and Yahoo
DEFAULT_EXCHANGE_ALLOW = [
    r"nasdaq", r"nyse", r"amex",
    r"^(NMS|NGM|NCM|NYQ|ASE|PCX|BTS)$",
]
DEFAULT_EXCHANGE_BLOCK = [r"otc", r"pink", r"^(PNK|OQB|OQX|OEM|OBB)$", r"grey"]

DEFAULT_BLOCKED_COUNTRIES = ["China", "Hong Kong", "CN", "HK"]

_POLICIES = {
    "unknown_price_policy": ("admit", "reject"),
    "unknown_exchange_policy": ("admit", "reject"),
    "high_float_policy": ("display", "omit"),
    "provider": ("fmp", "yfinance"),
}


def load_config(config_path: str | Path = "config.yaml") -> Dict[str, Any]:
    """
    Load configuration from the specified YAML file.

    Args:
        config_path (str | Path): Path to the configuration file. Defaults to "config.yaml".

    Returns:
        Dict[str, Any]: A dictionary containing the configuration settings.
    """
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found at {config_path}")

    with open(config_file, "r", encoding="utf-8") as file:
        config_data = yaml.safe_load(file)

    if not config_data:
        raise ValueError(f"Configuration file {config_path} is empty or invalid.")

    return config_data


def _choice(name: str, value: str) -> str:
    value = str(value).strip().lower()
    if value not in _POLICIES[name]:
        raise ValueError(f"{name} must be one of {_POLICIES[name]}, got {value!r}")
    return value


@dataclass
class FeedSettings:
    urls: List[str] = field(default_factory=lambda: [DEFAULT_FEED_URL])
    max_items_per_feed: int = 20
    timeout_seconds: float = 15.0


@dataclass
class MarketDataSettings:
    provider: str = "fmp"
    api_key: str = ""
    timeout_seconds: float = 8.0
    lookup_deadline_seconds: float = 20.0
    cache_failures: bool = False


@dataclass
class ScheduleSettings:
    refresh_interval_seconds: int = 60
    max_workers: int = 8
    cycle_timeout_seconds: float = 45.0


@dataclass
class FilterSettings:
    recency_window_hours: float = 24.0
    keywords: List[str] = field(default_factory=lambda: list(DEFAULT_KEYWORDS))
    price_ceiling: float = 20.0
    unknown_price_policy: str = "admit"
    exchange_allow_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCHANGE_ALLOW))
    exchange_block_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCHANGE_BLOCK))
    unknown_exchange_policy: str = "reject"
    blocked_countries: List[str] = field(default_factory=lambda: list(DEFAULT_BLOCKED_COUNTRIES))


@dataclass
class TierSettings:
    bright_below: float = 5_000_000
    soft_below: float = 10_000_000
    normal_max: float = 20_000_000
    high_float_policy: str = "display"


@dataclass
class ScannerConfig:
    """Typed view over ``config.yaml`` with defaults for every option."""
    feeds: FeedSettings = field(default_factory=FeedSettings)
    article_timeout_seconds: float = 10.0
    market_data: MarketDataSettings = field(default_factory=MarketDataSettings)
    schedule: ScheduleSettings = field(default_factory=ScheduleSettings)
    filters: FilterSettings = field(default_factory=FilterSettings)
    tiers: TierSettings = field(default_factory=TierSettings)
    display_timezone: str = "America/Los_Angeles"
    server_host: str = "0.0.0.0"
    server_port: int = 10000

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "ScannerConfig":
        """Build a config from the parsed YAML dict, resolving secrets from the environment.

        Args:
            data: Parsed ``config.yaml`` (``None`` or ``{}`` yields all defaults).

        Raises:
            ValueError: On unknown policy values or inconsistent tier thresholds.
        """
        data = data or {}
        feeds = data.get("feeds", {}) or {}
        market = data.get("market_data", {}) or {}
        schedule = data.get("schedule", {}) or {}
        filters = data.get("filters", {}) or {}
        tiers = data.get("tiers", {}) or {}
        display = data.get("display", {}) or {}
        server = data.get("server", {}) or {}

        urls = feeds.get("urls") or [DEFAULT_FEED_URL]
        if isinstance(urls, str):
            urls = [urls]

        api_key_env = market.get("api_key_env", "FMP_API_KEY")

        tier_settings = TierSettings(
            bright_below=float(tiers.get("bright_below", 5_000_000)),
            soft_below=float(tiers.get("soft_below", 10_000_000)),
            normal_max=float(tiers.get("normal_max", 20_000_000)),
            high_float_policy=_choice("high_float_policy", tiers.get("high_float_policy", "display")),
        )
        if not tier_settings.bright_below <= tier_settings.soft_below <= tier_settings.normal_max:
            raise ValueError("tiers must satisfy bright_below <= soft_below <= normal_max")

        return cls(
            feeds=FeedSettings(
                urls=[str(u) for u in urls],
                max_items_per_feed=int(feeds.get("max_items_per_feed", 20)),
                timeout_seconds=float(feeds.get("timeout_seconds", 15)),
            ),
            article_timeout_seconds=float((data.get("article", {}) or {}).get("timeout_seconds", 10)),
            market_data=MarketDataSettings(
                provider=_choice("provider", market.get("provider", "fmp")),
                api_key=os.getenv(api_key_env, ""),
                timeout_seconds=float(market.get("timeout_seconds", 8)),
                lookup_deadline_seconds=float(market.get("lookup_deadline_seconds", 20)),
                cache_failures=bool(market.get("cache_failures", False)),
            ),
            schedule=ScheduleSettings(
                refresh_interval_seconds=int(schedule.get("refresh_interval_seconds", 60)),
                max_workers=max(1, int(schedule.get("max_workers", 8))),
                cycle_timeout_seconds=float(schedule.get("cycle_timeout_seconds", 45)),
            ),
            filters=FilterSettings(
                recency_window_hours=float(filters.get("recency_window_hours", 24)),
                keywords=list(filters.get("keywords", DEFAULT_KEYWORDS)),
                price_ceiling=float(filters.get("price_ceiling", 20)),
                unknown_price_policy=_choice(
                    "unknown_price_policy", filters.get("unknown_price_policy", "admit")
                ),
                exchange_allow_patterns=list(
                    filters.get("exchange_allow_patterns", DEFAULT_EXCHANGE_ALLOW)
                ),
                exchange_block_patterns=list(
                    filters.get("exchange_block_patterns", DEFAULT_EXCHANGE_BLOCK)
                ),
                unknown_exchange_policy=_choice(
                    "unknown_exchange_policy", filters.get("unknown_exchange_policy", "reject")
                ),
                blocked_countries=list(filters.get("blocked_countries", DEFAULT_BLOCKED_COUNTRIES)),
            ),
            tiers=tier_settings,
            display_timezone=str(display.get("timezone", "America/Los_Angeles")),
            server_host=str(server.get("host", "0.0.0.0")),
            server_port=int(server.get("port") or os.getenv("PORT", "10000")),
        )
