import pytest

from lifi_gateway.core.arguments import get_array, get_object, get_string, join_array
from lifi_gateway.core.errors import ValidationError
from lifi_gateway.core.utils import extract_revert_reason, parse_quantity
from lifi_gateway.core.validation import (
    MAX_UINT256,
    ZERO_ADDRESS,
    validate_address,
    validate_amount,
    validate_amount_allow_zero,
    validate_chain_id,
    validate_recipient_address,
    validate_slippage,
    validate_token_address,
)


class TestAddresses:
    @pytest.mark.parametrize(
        "address",
        [
            "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
            "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
            "0XA0B86991C6218B36C1D19D4A2E9EB0CE3606EB48",
            "a0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
        ],
    )
    def test_accepts_any_case(self, address):
        assert validate_address("address", address) == address

    @pytest.mark.parametrize("address", ["0x123", "0xZZb86991c6218b36c1d19d4a2e9eb0ce3606eb48", "hello"])
    def test_rejects_malformed(self, address):
        with pytest.raises(ValidationError) as exc:
            validate_address("address", address)
        assert exc.value.field == "address"
        assert "invalid address format" in str(exc.value)

    def test_required(self):
        with pytest.raises(ValidationError, match="address is required"):
            validate_address("owner", "")

    def test_recipient_rejects_zero_address(self):
        with pytest.raises(ValidationError, match="zero address"):
            validate_recipient_address("to", ZERO_ADDRESS)

    def test_token_allows_zero_address(self):
        assert validate_token_address("fromToken", ZERO_ADDRESS) == ZERO_ADDRESS


class TestAmounts:
    def test_parses_largest_uint256(self):
        assert validate_amount("amount", str(MAX_UINT256)) == MAX_UINT256

    def test_rejects_above_uint256(self):
        with pytest.raises(ValidationError, match="maximum uint256"):
            validate_amount_allow_zero("amount", "9" * 78)

    def test_rejects_too_many_digits(self):
        with pytest.raises(ValidationError, match="maximum allowed digits"):
            validate_amount("amount", "1" * 79)

    @pytest.mark.parametrize(
        "amount, message",
        [
            ("", "amount is required"),
            ("0", "cannot be zero"),
            ("-5", "cannot be negative"),
            ("1.5", "invalid amount format"),
            ("1e18", "invalid amount format"),
            ("0x10", "invalid amount format"),
            ("²", "invalid amount format"),
            ("-²", "invalid amount format"),
        ],
    )
    def test_rejects(self, amount, message):
        with pytest.raises(ValidationError, match=message):
            validate_amount("amount", amount)

    def test_allow_zero(self):
        assert validate_amount_allow_zero("amount", "0") == 0


class TestChainIds:
    def test_numeric_is_normalized(self):
        assert validate_chain_id("fromChain", "0137") == "137"

    def test_key_is_accepted(self):
        assert validate_chain_id("fromChain", "arb") == "arb"

    @pytest.mark.parametrize("chain_id", ["0", "-1", "-0"])
    def test_rejects_non_positive(self, chain_id):
        with pytest.raises(ValidationError, match="positive integer"):
            validate_chain_id("fromChain", chain_id)

    @pytest.mark.parametrize("chain_id", ["1;DROP", "--1", "²", "1²", "١"])
    def test_rejects_garbage(self, chain_id):
        with pytest.raises(ValidationError, match="invalid chain ID format"):
            validate_chain_id("fromChain", chain_id)


class TestSlippage:
    @pytest.mark.parametrize("value", ["", "0", "0.005", "1", "1.0"])
    def test_in_range(self, value):
        assert validate_slippage(value) == value

    @pytest.mark.parametrize(
        "value, message",
        [("-0.1", "negative"), ("1.01", "exceed"), ("abc", "invalid slippage"), ("NaN", "invalid slippage")],
    )
    def test_out_of_range(self, value, message):
        with pytest.raises(ValidationError, match=message):
            validate_slippage(value)


class TestArguments:
    def test_get_string_strips_and_ignores_wrong_types(self):
        arguments = {"a": "  x ", "b": 5}
        assert get_string(arguments, "a") == "x"
        assert get_string(arguments, "b") == ""
        assert get_string(None, "a") == ""

    def test_get_object_and_array(self):
        arguments = {"o": {"k": 1}, "l": [1, 2], "s": "x"}
        assert get_object(arguments, "o") == {"k": 1}
        assert get_object(arguments, "s") is None
        assert get_array(arguments, "l") == [1, 2]
        assert get_array(arguments, "s") is None

    def test_join_array_skips_non_scalars(self):
        assert join_array(["stargate", 7, {"x": 1}, "", True]) == "stargate,7"
        assert join_array(None) == ""


class TestQuantities:
    @pytest.mark.parametrize(
        "value, expected",
        [(None, None), ("", None), (5, 5), ("0x1e", 30), ("0x", 0), ("42", 42), (3.0, 3)],
    )
    def test_parse(self, value, expected):
        assert parse_quantity(value, field_name="value") == expected

    @pytest.mark.parametrize("value", [-1, True, "1.5", "abc", "²", [1]])
    def test_parse_rejects(self, value):
        with pytest.raises(ValueError):
            parse_quantity(value, field_name="value")

    def test_revert_reason(self):
        assert extract_revert_reason("execution reverted: Insufficient output") == "Insufficient output"
        assert extract_revert_reason(ValueError("out of gas")) == "Unknown reason"
        assert extract_revert_reason("execution reverted:") == "Unknown reason"
