import re
from typing import Optional


class EmailValidator:
    """Light email validation: one '@', non-empty local part, dotted domain."""

    _PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

    @staticmethod
    def normalize_email(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        return raw.strip().lower()

    @staticmethod
    def is_valid_email(email: Optional[str]) -> bool:
        if not email:
            return False
        return bool(EmailValidator._PATTERN.match(EmailValidator.normalize_email(email)))


class TextValidator:
    """Basic text checks shared by the request models."""

    @staticmethod
    def validate_name(name: Optional[str]) -> bool:
        if name is None:
            return False
        t = name.strip()
        if not t:
            return False
        # names need at least one letter
        return any(c.isalpha() for c in t)

    @staticmethod
    def validate_phone_number(phone: Optional[str]) -> bool:
        if phone is None:
            return False
        digits = re.sub(r"[\s\-()+.]", "", phone)
        return digits.isdigit() and 6 <= len(digits) <= 15

    @staticmethod
    def sanitize_text(text: Optional[str]) -> str:
        if text is None:
            return ""
        # strip HTML tags
        return re.sub(r"<[^>]*>", "", text).strip()
