"""Tests for card brand detection, Luhn validation, expiry checks and transaction ids."""

import re
import time
from datetime import datetime, timezone

import pytest

from cardvault.crypto import (
    CardBrand,
    detect_card_brand,
    generate_transaction_id,
    is_card_expired,
    normalize_card_number,
    parse_expiry,
    validate_card_number,
)


class TestDetectCardBrand:

    @pytest.mark.parametrize(
        "number, brand",
        [
            ("4242424242424242", CardBrand.VISA),
            ("4111 1111 1111 1111", CardBrand.VISA),
            ("5500000000000004", CardBrand.MASTERCARD),
            ("5105105105105100", CardBrand.MASTERCARD),
            ("2221000000000009", CardBrand.MASTERCARD),
            ("2720990000000007", CardBrand.MASTERCARD),
            ("340000000000009", CardBrand.AMEX),
            ("3782-822463-10005", CardBrand.AMEX),
            ("6011000000000004", CardBrand.DISCOVER),
            ("6221260000000000", CardBrand.DISCOVER),
            ("6229250000000000", CardBrand.DISCOVER),
            ("6440000000000000", CardBrand.DISCOVER),
            ("6500000000000002", CardBrand.DISCOVER),
            ("3528000000000007", CardBrand.JCB),
            ("3589000000000003", CardBrand.JCB),
            ("30569309025904", CardBrand.DINERS),
            ("36000000000008", CardBrand.DINERS),
            ("38000000000006", CardBrand.DINERS),
            ("6200000000000005", CardBrand.UNIONPAY),
            ("6221250000000000", CardBrand.UNIONPAY),
            ("6229260000000000", CardBrand.UNIONPAY),
            ("5018000000000009", CardBrand.MAESTRO),
            ("6304000000000000", CardBrand.MAESTRO),
            ("6759000000000000", CardBrand.MAESTRO),
            ("6762000000000000", CardBrand.MAESTRO),
            ("0000000000000000", CardBrand.UNKNOWN),
            ("2220999999999999", CardBrand.UNKNOWN),
            ("2721000000000000", CardBrand.UNKNOWN),
            ("3527000000000000", CardBrand.UNKNOWN),
        ],
    )
    def test_brand_table(self, number, brand):
        assert detect_card_brand(number) == brand

    def test_brand_is_plain_string_value(self):
        assert detect_card_brand("4242424242424242") == "VISA"

    @pytest.mark.parametrize("number", ["", "abc", "   ", "-", "x4242"])
    def test_garbage_is_unknown_not_an_error(self, number):
        assert detect_card_brand(number) == CardBrand.UNKNOWN

    def test_short_prefix(self):
        assert detect_card_brand("4") == CardBrand.VISA
        assert detect_card_brand("3") == CardBrand.UNKNOWN


class TestValidateCardNumber:

    @pytest.mark.parametrize(
        "number",
        [
            "4242424242424242",
            "4242 4242 4242 4242",
            "4242-4242-4242-4242",
            "5500000000000004",
            "340000000000009",
            "6011000000000004",
            "4222222222222",          # 13 digits
            "6011000000000000001",    # 19 digits
        ],
    )
    def test_valid(self, number):
        assert validate_card_number(number) is True

    @pytest.mark.parametrize(
        "number",
        [
            "4242424242424241",       # bad checksum
            "123",                    # too short
            "424242424242",           # 12 digits
            "42424242424242424242",   # 20 digits
            "4242a24242424242",
            "",
            "４２４２４２４２４２４２４２４２",  # full-width digits
        ],
    )
    def test_invalid(self, number):
        assert validate_card_number(number) is False

    def test_normalize(self):
        assert normalize_card_number(" 4242-4242 4242-4242 ") == "4242424242424242"


class TestExpiry:

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("12/25", (12, 2025)),
            ("1/30", (1, 2030)),
            ("06/2031", (6, 2031)),
            (" 07 / 29 ", (7, 2029)),
        ],
    )
    def test_parse(self, value, expected):
        assert parse_expiry(value) == expected

    @pytest.mark.parametrize("value", ["", "1225", "13/25", "00/25", "12/5", "ab/cd", "12/202"])
    def test_parse_rejects(self, value):
        with pytest.raises(ValueError):
            parse_expiry(value)

    def test_valid_through_end_of_month(self):
        now = datetime(2025, 12, 31, 23, 59, tzinfo=timezone.utc)
        assert is_card_expired("12/25", now) is False
        assert is_card_expired("11/25", now) is True
        assert is_card_expired("01/26", now) is False

    def test_malformed_counts_as_expired(self):
        assert is_card_expired("garbage") is True


class TestGenerateTransactionId:

    def test_format(self):
        txn = generate_transaction_id()
        assert re.fullmatch(r"TXN-[0-9A-Z]+-[0-9A-F]{16}", txn)

    def test_timestamp_part_is_base36_millis(self):
        before = time.time_ns() // 1_000_000
        txn = generate_transaction_id()
        after = time.time_ns() // 1_000_000
        assert before <= int(txn.split("-")[1], 36) <= after

    def test_unique(self):
        ids = {generate_transaction_id() for _ in range(1000)}
        assert len(ids) == 1000
