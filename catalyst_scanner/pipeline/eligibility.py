"""Eligibility rules for enriched ticker mentions.

Rules run in a fixed order and the first failure decides the reason:

  1. format          no foreign-listing suffix, at most 5 characters
  2. price_ceiling   known price must not exceed the ceiling
  3. exchange        OTC/pink markers out, major markets in
  4. country         blocked issuer countries out (only when known)
  5. float           tier ``omit`` out

``check_format`` is exposed separately so the engine can reject a symbol
before paying for a quote lookup.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from catalyst_scanner.core.config import FilterSettings
from catalyst_scanner.models.datatypes import QuoteRecord
from catalyst_scanner.pipeline.tiers import TIER_OMIT, TIER_UNKNOWN, FloatTierClassifier

MAX_SYMBOL_LENGTH = 5


@dataclass(frozen=True)
class Verdict:
    """Outcome of the rule chain; ``reason`` is a stable code for logs."""
    eligible: bool
    reason: str = "OK"
    tier: str = TIER_UNKNOWN


class EligibilityClassifier:
    """Applies the configured filters to a symbol and its quote.

    Args:
        settings: Filter section of the scanner config.
        tiers: Float tier classifier (also the source of the high-float omit rule).
    """

    def __init__(self, settings: Optional[FilterSettings] = None, tiers: Optional[FloatTierClassifier] = None) -> None:
        self.settings = settings or FilterSettings()
        self.tiers = tiers or FloatTierClassifier()
        self._allow = _compile(self.settings.exchange_allow_patterns)
        self._block = _compile(self.settings.exchange_block_patterns)
        self._blocked_countries = {c.strip().lower() for c in self.settings.blocked_countries if c.strip()}

    def check_format(self, symbol: str) -> Verdict:
        if not symbol:
            return Verdict(False, "FORMAT_EMPTY")
        if "." in symbol:
            return Verdict(False, "FORMAT_FOREIGN_SUFFIX")
        if len(symbol) > MAX_SYMBOL_LENGTH:
            return Verdict(False, "FORMAT_TOO_LONG")
        return Verdict(True)

    def classify(self, symbol: str, quote: QuoteRecord) -> Verdict:
        """Run every rule in order and return the first rejection, or an eligible verdict."""
        verdict = self.check_format(symbol)
        if not verdict.eligible:
            return verdict

        tier = self.tiers.classify(quote.float_shares)

        if quote.price is None:
            if self.settings.unknown_price_policy == "reject":
                return Verdict(False, "PRICE_UNKNOWN", tier)
        elif quote.price > self.settings.price_ceiling:
            return Verdict(False, "PRICE_ABOVE_CEILING", tier)

        reason = self._check_exchange(quote.exchange)
        if reason:
            return Verdict(False, reason, tier)

        if quote.country and quote.country.strip().lower() in self._blocked_countries:
            return Verdict(False, "COUNTRY_BLOCKED", tier)

        if tier == TIER_OMIT:
            return Verdict(False, "FLOAT_TOO_HIGH", tier)

        return Verdict(True, "OK", tier)

    def _check_exchange(self, exchange: Optional[str]) -> Optional[str]:
        if not exchange:
            if self.settings.unknown_exchange_policy == "reject":
                return "EXCHANGE_UNKNOWN"
            return None
        if any(p.search(exchange) for p in self._block):
            return "EXCHANGE_OTC"
        if not any(p.search(exchange) for p in self._allow):
            return "EXCHANGE_NOT_ALLOWED"
        return None


def _compile(patterns: List[str]) -> List[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]
