# shopeasy/utils/validators.py

import re
from typing import Optional

from email_validator import validate_email, EmailNotValidError

CONTACT_PATTERN = re.compile(r"^\+?\d{10,15}$")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: Optional[str]) -> bool:
    if not email:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def normalize_contact(contact: Optional[str]) -> Optional[str]:
    """
    Strips spaces, dashes and brackets from a phone number. Returns None when
    what remains is not 10-15 digits with an optional leading '+'.
    """
    if contact is None:
        return None
    cleaned = re.sub(r"[\s\-().]", "", str(contact))
    if not CONTACT_PATTERN.match(cleaned):
        return None
    return cleaned
