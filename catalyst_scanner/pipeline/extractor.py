"""Ticker extraction from press-release titles and bodies.

Rules are tried in order and the first match wins:

1. ``title_exchange``  "(NASDAQ: ACME)", "(nyse:ACME)", "(Amex: ACME)" in the title
2. ``title_paren``     bare "(ACME)" in the title, one to five letters
3. ``body_exchange``   rule 1's pattern searched in the article body

Exchange-qualified captures may include a dot so listings like ``BABA.HK``
reach the format rule intact rather than being truncated to ``BABA``.
"""

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence, Tuple

from catalyst_scanner.core.logger import logger

# Exchange names match case-insensitively; the symbol itself must be uppercase
_SYMBOL = r"([A-Z]+(?:\.[A-Z]+)*)"
_EXCHANGE_QUALIFIED = re.compile(r"\(\s*(?i:nasdaq|nyse|amex)\s*:\s*" + _SYMBOL + r"(?![A-Za-z])")
_BARE_PAREN = re.compile(r"\(([A-Z]{1,5})\)")


@dataclass(frozen=True)
class ExtractionRule:
    """A named pattern applied to one field of the item (``title`` or ``body``)."""
    name: str
    field: str
    pattern: Pattern[str]

    def match(self, title: str, body: str) -> Optional[str]:
        text = title if self.field == "title" else body
        m = self.pattern.search(text or "")
        return m.group(1) if m else None


DEFAULT_RULES: Tuple[ExtractionRule, ...] = (
    ExtractionRule("title_exchange", "title", _EXCHANGE_QUALIFIED),
    ExtractionRule("title_paren", "title", _BARE_PAREN),
    ExtractionRule("body_exchange", "body", _EXCHANGE_QUALIFIED),
)


class TickerExtractor:
    """Applies an ordered list of :class:`ExtractionRule` objects."""

    def __init__(self, rules: Sequence[ExtractionRule] = DEFAULT_RULES) -> None:
        self.rules = tuple(rules)

    def extract(self, title: str, body: str = "") -> Optional[str]:
        """Return the symbol captured by the first matching rule, or None."""
        match = self.extract_with_rule(title, body)
        return match[0] if match else None

    def extract_with_rule(self, title: str, body: str = "") -> Optional[Tuple[str, str]]:
        """Like :meth:`extract` but also returns the name of the rule that matched."""
        for rule in self.rules:
            symbol = rule.match(title, body)
            if symbol:
                logger.debug(f"TickerExtractor: {symbol} via {rule.name}")
                return symbol, rule.name
        return None
