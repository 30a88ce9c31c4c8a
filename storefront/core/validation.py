"""Input validation for checkout, signup and address forms.

Pure predicate functions. Each returns a ValidationResult carrying the
message shown to the shopper when the check fails. Nothing here mutates
state.
"""

import re
from dataclasses import dataclass

from .models import DeliveryInfo, PaymentForm, PaymentMethod
from .regions import get_city, get_region

MOBILE_MONEY_NUMBER = re.compile(r"0\d{9}", re.ASCII)
CARD_NUMBER = re.compile(r"\d{16}", re.ASCII)
EXPIRY_DATE = re.compile(r"\d{2}/\d{2}", re.ASCII)
CVV = re.compile(r"\d{3,4}", re.ASCII)
NAME = re.compile(r"[a-zA-Z\s\-']+")
EMAIL = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

_WHITESPACE = re.compile(r"\s")
_NON_DIGIT = re.compile(r"\D", re.ASCII)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation check."""

    is_valid: bool
    message: str | None = None

    def __bool__(self) -> bool:
        return self.is_valid


VALID = ValidationResult(True)


def _invalid(message: str) -> ValidationResult:
    return ValidationResult(False, message)


# ============================================================================
# Checkout
# ============================================================================


def validate_delivery_info(delivery: DeliveryInfo) -> ValidationResult:
    """Full name, address, city and phone are required; state and zip are optional."""
    if not (delivery.full_name and delivery.address and delivery.city and delivery.phone):
        return _invalid("Please fill in all delivery information fields")
    return VALID


def validate_mobile_money_number(phone_number: str) -> ValidationResult:
    """A leading zero followed by nine digits."""
    if not MOBILE_MONEY_NUMBER.fullmatch(phone_number):
        return _invalid("Please enter a valid 10-digit phone number starting with 0")
    return VALID


def validate_mobile_money(phone_number: str, confirm_phone_number: str) -> ValidationResult:
    if not phone_number or not confirm_phone_number:
        return _invalid("Please enter and confirm your mobile money number")
    if phone_number != confirm_phone_number:
        return _invalid("Phone numbers do not match")
    return validate_mobile_money_number(phone_number)


def validate_card_number(card_number: str) -> ValidationResult:
    """Sixteen digits once formatting whitespace is removed."""
    if not CARD_NUMBER.fullmatch(_WHITESPACE.sub("", card_number)):
        return _invalid("Please enter a valid 16-digit card number")
    return VALID


def validate_expiry_date(expiry_date: str) -> ValidationResult:
    if not EXPIRY_DATE.fullmatch(expiry_date):
        return _invalid("Please enter expiry date in MM/YY format")
    return VALID


def validate_cvv(cvv: str) -> ValidationResult:
    if not CVV.fullmatch(cvv):
        return _invalid("Please enter a valid CVV")
    return VALID


def validate_card(card_number: str, expiry_date: str, cvv: str) -> ValidationResult:
    if not card_number or not expiry_date or not cvv:
        return _invalid("Please fill in all card details")
    for result in (
        validate_card_number(card_number),
        validate_expiry_date(expiry_date),
        validate_cvv(cvv),
    ):
        if not result.is_valid:
            return result
    return VALID


def validate_checkout(
    delivery: DeliveryInfo,
    payment_method: PaymentMethod,
    payment_form: PaymentForm | None = None,
) -> ValidationResult:
    """Run the delivery checks, then the checks for the chosen payment method.

    Returns the first failure, or a valid result if everything passes.
    """
    result = validate_delivery_info(delivery)
    if not result.is_valid:
        return result

    form = payment_form or PaymentForm()
    if payment_method == PaymentMethod.MOBILE_MONEY:
        return validate_mobile_money(form.phone_number, form.confirm_phone_number)
    if payment_method == PaymentMethod.CARD:
        return validate_card(form.card_number, form.expiry_date, form.cvv)
    return VALID


def format_card_number(text: str) -> str:
    """Group card digits in fours, capped at 16 digits plus separators."""
    cleaned = _WHITESPACE.sub("", text)
    grouped = " ".join(cleaned[i : i + 4] for i in range(0, len(cleaned), 4))
    return grouped[:19]


def format_expiry_date(text: str) -> str:
    """Turn typed digits into ``MM/YY``."""
    cleaned = _NON_DIGIT.sub("", text)
    if len(cleaned) >= 2:
        return cleaned[:2] + "/" + cleaned[2:4]
    return cleaned


def mask_card_number(card_number: str) -> str:
    """Last four digits of a card number, whitespace ignored."""
    return _WHITESPACE.sub("", card_number)[-4:]


# ============================================================================
# Signup / profile
# ============================================================================


def validate_name(name: str) -> ValidationResult:
    trimmed = (name or "").strip()
    if not trimmed:
        return _invalid("Name is required")
    if len(trimmed) < 2:
        return _invalid("Name must be at least 2 characters long")
    if len(trimmed) > 50:
        return _invalid("Name must be less than 50 characters")
    if not NAME.fullmatch(trimmed):
        return _invalid("Name can only contain letters, spaces, hyphens, and apostrophes")
    return VALID


def validate_email(email: str) -> ValidationResult:
    trimmed = (email or "").strip()
    if not trimmed:
        return _invalid("Email is required")
    if not EMAIL.fullmatch(trimmed):
        return _invalid("Please enter a valid email address")
    return VALID


def validate_password(password: str) -> ValidationResult:
    if not password:
        return _invalid("Password is required")
    if len(password) < 6:
        return _invalid("Password must be at least 6 characters long")
    if len(password) > 128:
        return _invalid("Password must be less than 128 characters")
    return VALID


def validate_phone(phone: str) -> ValidationResult:
    """Between 10 and 15 digits, ignoring any formatting characters."""
    if not phone or not phone.strip():
        return _invalid("Phone number is required")
    digits_only = _NON_DIGIT.sub("", phone)
    if len(digits_only) < 10:
        return _invalid("Phone number must be at least 10 digits")
    if len(digits_only) > 15:
        return _invalid("Phone number must be less than 15 digits")
    return VALID


# ============================================================================
# Delivery addresses
# ============================================================================


def validate_address_form(
    full_name: str,
    phone_number: str,
    region_id: int,
    city_id: int,
    street_address: str,
) -> ValidationResult:
    if not full_name.strip() or not phone_number.strip() or not street_address.strip():
        return _invalid("Please fill in all required address fields")
    if get_region(region_id) is None:
        return _invalid(f"Unknown region: {region_id}")
    city = get_city(city_id)
    if city is None or city.region_id != region_id:
        return _invalid("Please select a city in the chosen region")
    return VALID
