"""
Unit tests for amount parsing and bank name canonicalization.
"""
import pytest

from services.normalizer import BANK_NAME_RULES, canonicalize_bank_name, parse_amount


class TestParseAmount:
    def test_currency_and_separators(self):
        assert parse_amount("1,234.50 THB") == 1234.50

    def test_baht_sign(self):
        assert parse_amount("฿ 500.00") == 500.0

    @pytest.mark.parametrize("raw", ["", "abc", None, "-", ".", "THB", "--"])
    def test_unparsable_is_zero(self, raw):
        assert parse_amount(raw) == 0.0

    def test_negative_clamps_to_zero(self):
        assert parse_amount("-250.00") == 0.0

    def test_parses_leading_number_only(self):
        assert parse_amount("1.2.3") == 1.2
        assert parse_amount("12-3") == 12.0

    def test_overflowing_digit_run_is_zero(self):
        assert parse_amount("9" * 400) == 0.0
        assert parse_amount("9" * 400 + " THB") == 0.0

    def test_leading_decimal_point(self):
        assert parse_amount(".75") == 0.75

    @pytest.mark.parametrize("raw", ["1,000", "-1", "x-9.5", "0.00", "99,999,999.99", "NaN", "inf"])
    def test_never_negative(self, raw):
        value = parse_amount(raw)
        assert value >= 0
        assert value == value  # not NaN


class TestCanonicalizeBankName:
    def test_krungsri_variants_share_label(self):
        assert canonicalize_bank_name("KRUNGSRI BANK") == canonicalize_bank_name("Krungsri")
        assert canonicalize_bank_name("  krungsri ") == "กรุงศรี"

    def test_kasikorn_variants(self):
        assert canonicalize_bank_name("ธ.กสิกรไทย") == "กสิกรไทย"
        assert canonicalize_bank_name("KASIKORNBANK") == "กสิกรไทย"
        assert canonicalize_bank_name("KBank") == "กสิกรไทย"

    def test_scb_variants(self):
        assert canonicalize_bank_name("SCB") == "ไทยพาณิชย์"
        assert canonicalize_bank_name("ธนาคารไทยพาณิชย์") == "ไทยพาณิชย์"

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("ธนาคารSCB", "ไทยพาณิชย์"),
            ("SCBEasy", "ไทยพาณิชย์"),
            ("ธนาคารKBank", "กสิกรไทย"),
            ("ธ.BAY", "กรุงศรี"),
            ("ธนาคารKTB", "กรุงไทย"),
            ("BBLธนาคาร", "กรุงเทพ"),
        ],
    )
    def test_codes_touching_thai_text(self, raw, expected):
        assert canonicalize_bank_name(raw) == expected

    def test_codes_inside_latin_words_do_not_match(self):
        assert canonicalize_bank_name("Baytown Credit") == "Baytown Credit"
        assert canonicalize_bank_name("KBankers Union") == "KBankers Union"

    def test_krungthai_and_bangkok_bank_stay_distinct(self):
        assert canonicalize_bank_name("Krung Thai Bank") == "กรุงไทย"
        assert canonicalize_bank_name("Bangkok Bank") == "กรุงเทพ"

    def test_unmatched_passes_through_trimmed(self):
        assert canonicalize_bank_name("  TTB  ") == "TTB"
        assert canonicalize_bank_name(None) == ""

    def test_first_matching_rule_wins(self):
        # Mentions two banks; the earlier rule decides.
        assert canonicalize_bank_name("Krungsri via SCB Easy") == BANK_NAME_RULES[0][1]
