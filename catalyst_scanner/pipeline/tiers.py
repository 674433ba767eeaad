"""Float-size tiers used for row emphasis and the optional high-float filter."""

from typing import Optional

from catalyst_scanner.core.config import TierSettings

TIER_UNKNOWN = "unknown"
TIER_BRIGHT = "bright"
TIER_SOFT = "soft"
TIER_NORMAL = "normal"
TIER_HIGH = "high"
TIER_OMIT = "omit"


class FloatTierClassifier:
    """Maps float shares outstanding to a tier.

    ========================================  =================
    float                                     tier
    ========================================  =================
    unknown                                   ``unknown``
    < bright_below                            ``bright``
    bright_below <= F < soft_below            ``soft``
    soft_below <= F <= normal_max             ``normal``
    > normal_max                              ``high`` / ``omit``
    ========================================  =================
    """

    def __init__(self, settings: Optional[TierSettings] = None) -> None:
        self.settings = settings or TierSettings()

    def classify(self, float_shares: Optional[float]) -> str:
        s = self.settings
        if float_shares is None:
            return TIER_UNKNOWN
        if float_shares < s.bright_below:
            return TIER_BRIGHT
        if float_shares < s.soft_below:
            return TIER_SOFT
        if float_shares <= s.normal_max:
            return TIER_NORMAL
        return TIER_OMIT if s.high_float_policy == "omit" else TIER_HIGH


def format_float(float_shares: Optional[float]) -> str:
    """Render a share count as ``"4.00M"`` / ``"1.25B"`` / ``"850.0K"``, or ``"N/A"``."""
    if float_shares is None:
        return "N/A"
    if float_shares >= 1_000_000_000:
        return f"{float_shares / 1_000_000_000:.2f}B"
    if float_shares >= 1_000_000:
        return f"{float_shares / 1_000_000:.2f}M"
    if float_shares >= 1_000:
        return f"{float_shares / 1_000:.1f}K"
    return f"{float_shares:.0f}"
