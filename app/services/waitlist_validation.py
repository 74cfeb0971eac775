"""Normalization and validation of waitlist form input.

Rules are checked in a fixed order (email, then phone, then "at least one
contact") and the first failure is raised as a ValidationError, so the form
always shows a single message.
"""
import re
from typing import Optional, Tuple

from email_validator import validate_email, EmailNotValidError

from app.core.exceptions import ValidationError

# Moroccan mobile numbers: 0 or +212 followed by 5, 6 or 7 and eight digits
PHONE_REGEX = re.compile(r"(\+212|0)[5-7][0-9]{8}")

INVALID_EMAIL_MESSAGE = "Veuillez entrer une adresse email valide"
INVALID_PHONE_MESSAGE = "Veuillez entrer un numéro de téléphone valide (+212 ou 0)"
MISSING_CONTACT_MESSAGE = "Veuillez fournir soit une adresse email soit un numéro WhatsApp"


def clean_value(value: Optional[str]) -> Optional[str]:
    """Trim whitespace and turn empty strings into None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def is_valid_email(email: str) -> bool:
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_valid_phone(phone: str) -> bool:
    return PHONE_REGEX.fullmatch(phone) is not None


def format_phone_number(phone: str) -> str:
    """Convert a local 0XXXXXXXXX number to the +212 international form."""
    if phone.startswith("0"):
        return "+212" + phone[1:]
    return phone


def normalize_submission(email: Optional[str], phone: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Clean and validate a signup, returning (email, phone) ready for storage.

    Emails are lower-cased and phones converted to +212 form so that the same
    contact typed two different ways deduplicates to one entry.
    """
    email = clean_value(email)
    phone = clean_value(phone)

    if email is not None and not is_valid_email(email):
        raise ValidationError(INVALID_EMAIL_MESSAGE, field="email")
    if phone is not None and not is_valid_phone(phone):
        raise ValidationError(INVALID_PHONE_MESSAGE, field="phone")
    if email is None and phone is None:
        raise ValidationError(MISSING_CONTACT_MESSAGE)

    if email is not None:
        email = email.lower()
    if phone is not None:
        phone = format_phone_number(phone)
    return email, phone
