"""
Phone number normalisation for WhatsApp recipients.
"""

import re
from typing import Optional


def normalize_phone_number(number: Optional[str], country_code: str = "966") -> str:
    """
    Normalise a locally entered phone number to international digits.
    
    Args:
        number: Raw number as stored by the clinic system
        country_code: Country prefix added to local numbers
    
    Returns:
        Digits with country prefix, or an empty string if nothing usable
    """
    if not number:
        return ""
    
    digits = re.sub(r"[^0-9]", "", number)
    if not digits:
        return ""
    
    if digits.startswith(country_code):
        # Local trunk zero kept after the country code
        rest = digits[len(country_code):]
        if rest.startswith("0"):
            return f"{country_code}{rest[1:]}"
        return digits
    
    if digits.startswith("0"):
        return f"{country_code}{digits[1:]}"
    
    return f"{country_code}{digits}"


def to_whatsapp_address(digits: str) -> str:
    """Format normalised digits as a Twilio WhatsApp address."""
    return f"whatsapp:+{digits}"
