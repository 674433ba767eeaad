"""Ticker extraction rule priority and patterns."""

import re

from catalyst_scanner.pipeline.extractor import ExtractionRule, TickerExtractor

extractor = TickerExtractor()


class TestExchangeQualifiedTitle:

    def test_nasdaq(self):
        assert extractor.extract("Acme Pharma Announces Positive Phase 3 Results (NASDAQ: ACME)") == "ACME"

    def test_exchange_name_case_insensitive(self):
        assert extractor.extract("Alpha (Nasdaq: ABCD) announces") == "ABCD"
        assert extractor.extract("Beta (nyse: BT) update") == "BT"
        assert extractor.extract("Gamma (Amex:GAM) news") == "GAM"

    def test_beats_bare_paren_elsewhere_in_title(self):
        title = "XYZ Partners (XYZ) and Acme (NASDAQ: ACME) sign deal"
        assert extractor.extract_with_rule(title) == ("ACME", "title_exchange")

    def test_beats_body_match(self):
        assert extractor.extract("Acme (NYSE: ACME) wins", "Other (NASDAQ: OTHR) said") == "ACME"

    def test_keeps_foreign_suffix_for_format_rule(self):
        assert extractor.extract("Alibaba update (NYSE: BABA.HK)") == "BABA.HK"

    def test_lowercase_symbol_is_not_a_ticker(self):
        assert extractor.extract("Foo (NASDAQ: acme) bar") is None


class TestBareParenTitle:

    def test_bare_paren(self):
        assert extractor.extract_with_rule("XYZ Corp (XYZ)") == ("XYZ", "title_paren")

    def test_bare_paren_beats_body_exchange(self):
        assert extractor.extract("XYZ Corp (XYZ) reports", "Acme (NASDAQ: ACME)") == "XYZ"

    def test_mixed_case_paren_ignored(self):
        assert extractor.extract("Results (Unaudited) released") is None

    def test_over_long_paren_falls_through_to_body(self):
        body = "Acme Holdings (NYSE: ACME) today announced"
        assert extractor.extract_with_rule("ACMEHOLD Update (ACMEHOLD)", body) == ("ACME", "body_exchange")

    def test_five_letter_paren_accepted(self):
        assert extractor.extract("Quintet Corp (QNTET) signs deal") == "QNTET"


class TestBody:

    def test_body_exchange(self):
        body = "NEW YORK, March 10 -- Acme Pharma, Inc. (Nasdaq: ACME ) today announced"
        assert extractor.extract_with_rule("Acme Pharma announces results", body) == ("ACME", "body_exchange")

    def test_bare_paren_in_body_is_not_used(self):
        assert extractor.extract("Company news", "Something (XYZ) happened") is None

    def test_no_match(self):
        assert extractor.extract("Market wrap", "") is None
        assert extractor.extract("", None) is None


def test_custom_rule_order_is_respected():
    rules = [
        ExtractionRule("dollar", "title", re.compile(r"\$([A-Z]{1,5})\b")),
        ExtractionRule("paren", "title", re.compile(r"\(([A-Z]{1,5})\)")),
    ]
    custom = TickerExtractor(rules)
    assert custom.extract_with_rule("$ABC rallies (XYZ)") == ("ABC", "dollar")
