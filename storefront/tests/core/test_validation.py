"""Unit tests for checkout, signup and address validation."""

import pytest

from storefront.core.models import DeliveryInfo, PaymentForm, PaymentMethod
from storefront.core.validation import (
    format_card_number,
    format_expiry_date,
    mask_card_number,
    validate_address_form,
    validate_card,
    validate_checkout,
    validate_email,
    validate_mobile_money,
    validate_name,
    validate_password,
    validate_phone,
)

DELIVERY = DeliveryInfo(
    full_name="Ama Mensah", address="12 Ring Road", city="Accra", phone="0241234567"
)


# ============================================================================
# Checkout validation
# ============================================================================


class TestDeliveryValidation:
    @pytest.mark.parametrize("missing", ["full_name", "address", "city", "phone"])
    def test_required_fields(self, missing: str) -> None:
        fields = {
            "full_name": "Ama Mensah",
            "address": "12 Ring Road",
            "city": "Accra",
            "phone": "0241234567",
        }
        fields[missing] = ""
        result = validate_checkout(DeliveryInfo(**fields), PaymentMethod.CASH_ON_DELIVERY)
        assert not result
        assert result.message == "Please fill in all delivery information fields"

    def test_state_and_zip_are_optional(self) -> None:
        assert validate_checkout(DELIVERY, PaymentMethod.CASH_ON_DELIVERY).is_valid


class TestMobileMoneyValidation:
    def test_valid_number(self) -> None:
        assert validate_mobile_money("0241234567", "0241234567").is_valid

    def test_missing_leading_zero(self) -> None:
        result = validate_mobile_money("241234567", "241234567")
        assert result.message == "Please enter a valid 10-digit phone number starting with 0"

    @pytest.mark.parametrize("number", ["02412345678", "024123456", "024123456a", "0241 234567"])
    def test_wrong_shape(self, number: str) -> None:
        assert not validate_mobile_money(number, number)

    def test_non_ascii_digits_rejected(self) -> None:
        number = "0٢٤١٢٣٤٥٦٧"
        assert not validate_mobile_money(number, number)

    def test_mismatch_reported_before_format(self) -> None:
        result = validate_mobile_money("0241234567", "0241234568")
        assert result.message == "Phone numbers do not match"

    def test_missing_confirmation(self) -> None:
        result = validate_mobile_money("0241234567", "")
        assert result.message == "Please enter and confirm your mobile money number"

    def test_checkout_uses_form_fields(self) -> None:
        form = PaymentForm(phone_number="0241234567", confirm_phone_number="0241234567")
        assert validate_checkout(DELIVERY, PaymentMethod.MOBILE_MONEY, form).is_valid
        assert not validate_checkout(DELIVERY, PaymentMethod.MOBILE_MONEY, None)


class TestCardValidation:
    def test_valid_card_with_spaces(self) -> None:
        assert validate_card("4111 1111 1111 1111", "12/27", "123").is_valid

    def test_missing_field_reported_first(self) -> None:
        result = validate_card("4111111111111111", "", "12")
        assert result.message == "Please fill in all card details"

    def test_short_card_number(self) -> None:
        result = validate_card("4111 1111 1111", "12/27", "123")
        assert result.message == "Please enter a valid 16-digit card number"

    @pytest.mark.parametrize("expiry", ["1227", "12-27", "1/27", "12/2027"])
    def test_bad_expiry(self, expiry: str) -> None:
        result = validate_card("4111111111111111", expiry, "123")
        assert result.message == "Please enter expiry date in MM/YY format"

    @pytest.mark.parametrize("cvv", ["12", "12345", "abc"])
    def test_bad_cvv(self, cvv: str) -> None:
        result = validate_card("4111111111111111", "12/27", cvv)
        assert result.message == "Please enter a valid CVV"

    def test_four_digit_cvv(self) -> None:
        assert validate_card("4111111111111111", "12/27", "1234").is_valid

    def test_delivery_checked_before_payment(self) -> None:
        result = validate_checkout(
            DeliveryInfo(full_name="", address="", city="", phone=""),
            PaymentMethod.CARD,
            PaymentForm(card_number="1"),
        )
        assert result.message == "Please fill in all delivery information fields"


class TestFormatting:
    def test_format_card_number_groups_and_caps(self) -> None:
        assert format_card_number("41111111") == "4111 1111"
        assert format_card_number("4111 1111 1111 1111 9999") == "4111 1111 1111 1111"

    def test_format_expiry_date(self) -> None:
        assert format_expiry_date("1") == "1"
        assert format_expiry_date("12") == "12/"
        assert format_expiry_date("1227") == "12/27"
        assert format_expiry_date("12/279") == "12/27"

    def test_mask_card_number(self) -> None:
        assert mask_card_number("4111 1111 1111 1234") == "1234"


# ============================================================================
# Signup validation
# ============================================================================


class TestSignupValidation:
    @pytest.mark.parametrize(
        "name,message",
        [
            ("", "Name is required"),
            ("A", "Name must be at least 2 characters long"),
            ("A" * 51, "Name must be less than 50 characters"),
            ("R2-D2", "Name can only contain letters, spaces, hyphens, and apostrophes"),
        ],
    )
    def test_invalid_names(self, name: str, message: str) -> None:
        assert validate_name(name).message == message

    def test_valid_name(self) -> None:
        assert validate_name("Kwame O'Neil-Boateng").is_valid

    def test_email(self) -> None:
        assert validate_email("ama@example.com").is_valid
        assert validate_email("").message == "Email is required"
        assert validate_email("ama@example").message == "Please enter a valid email address"

    def test_password(self) -> None:
        assert validate_password("secret").is_valid
        assert validate_password("").message == "Password is required"
        assert validate_password("12345").message == "Password must be at least 6 characters long"
        assert validate_password("x" * 129).message == "Password must be less than 128 characters"

    def test_phone_ignores_formatting(self) -> None:
        assert validate_phone("+233 24 123 4567").is_valid
        assert validate_phone("024-123").message == "Phone number must be at least 10 digits"
        assert validate_phone("1" * 16).message == "Phone number must be less than 15 digits"
        assert validate_phone("  ").message == "Phone number is required"


class TestAddressValidation:
    def test_valid_address(self) -> None:
        assert validate_address_form("Ama", "0241234567", 1, 2, "12 Ring Road").is_valid

    def test_missing_fields(self) -> None:
        result = validate_address_form("Ama", "", 1, 1, "12 Ring Road")
        assert result.message == "Please fill in all required address fields"

    def test_unknown_region(self) -> None:
        assert validate_address_form("Ama", "024", 99, 1, "x").message == "Unknown region: 99"

    def test_city_outside_region(self) -> None:
        result = validate_address_form("Ama", "024", 1, 3, "x")
        assert result.message == "Please select a city in the chosen region"
