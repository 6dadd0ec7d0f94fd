"""
Input Validation Utilities

FLOW OVERVIEW
- validate_email(email)
  • RFC-like syntax checks; returns sanitized lowercased value.
- validate_password_strength(password)
  • Enforce length and character variety.
- validate_slug / validate_iban / validate_card_expiry / validate_card_number
  • Shape checks for catalog slugs, managed bank accounts and saved cards.
- validate_verification_code(code)
  • Exactly six digits.
- validate_reject_reason(reason)
  • Non-trivial free text without markup.
- sanitize_input(input, max_length)
  • Trim, bound length, normalize, and remove null bytes.

Every validator returns a ValidationResult so handlers can turn a failure
straight into a 400 response.
"""

import re
from datetime import datetime
from typing import Optional
from dataclasses import dataclass


@dataclass
class ValidationResult:
    """Result of validation operation"""
    is_valid: bool
    error_message: Optional[str] = None
    sanitized_value: Optional[str] = None


class InputValidator:
    """Input validation for request payloads"""

    # RFC 5322 compliant email regex (simplified)
    EMAIL_PATTERN = re.compile(
        r'^[a-zA-Z0-9.!#$%&\'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$'
    )

    SLUG_PATTERN = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')

    IBAN_PATTERN = re.compile(r'^[A-Z]{2}[0-9]{2}[A-Z0-9]{10,30}$')

    CODE_PATTERN = re.compile(r'^[0-9]{6}$')

    XSS_PATTERNS = [
        r'<script[^>]*>.*?</script>',
        r'javascript:',
        r'on\w+\s*=',
        r'<iframe[^>]*>',
        r'<svg[^>]*>',
        r'data:text/html',
        r'vbscript:',
    ]

    @classmethod
    def validate_email(cls, email: str) -> ValidationResult:
        """
        Validate email address

        Args:
            email: Email address to validate

        Returns:
            ValidationResult with validation status and sanitized value
        """
        if not email or not isinstance(email, str):
            return ValidationResult(False, "Email must be a non-empty string")

        email = email.strip()
        if email == "":
            return ValidationResult(False, "Email cannot be empty")

        # Length validation (RFC 5321 limits)
        if len(email) > 254:
            return ValidationResult(False, "Email address too long (max 254 characters)")

        if email.count('@') != 1:
            return ValidationResult(False, "Email must contain exactly one @ symbol")

        if not cls.EMAIL_PATTERN.match(email):
            return ValidationResult(False, "Invalid email format")

        local_part, domain = email.split('@')
        if len(local_part) > 64:
            return ValidationResult(False, "Email local part too long (max 64 characters)")

        if local_part.startswith('.') or local_part.endswith('.') or '..' in local_part:
            return ValidationResult(False, "Invalid email format")

        if '.' not in domain or '..' in domain:
            return ValidationResult(False, "Invalid email domain")

        return ValidationResult(True, sanitized_value=email.lower())

    @classmethod
    def validate_password_strength(cls, password: str) -> ValidationResult:
        """
        Validate password strength requirements

        Args:
            password: Password to validate

        Returns:
            ValidationResult with validation status
        """
        if not password or not isinstance(password, str):
            return ValidationResult(False, "Password must be a non-empty string")

        if len(password) < 8:
            return ValidationResult(False, "Password must be at least 8 characters long")

        if len(password) > 128:
            return ValidationResult(False, "Password too long (max 128 characters)")

        weak_passwords = {
            'password', '12345678', 'qwertyui', 'password123', 'letmein1', 'welcome1'
        }
        if password.lower() in weak_passwords:
            return ValidationResult(False, "Password is too common, choose a stronger password")

        has_upper = any(c.isupper() for c in password)
        has_lower = any(c.islower() for c in password)
        has_digit = any(c.isdigit() for c in password)
        if not (has_upper and has_lower and has_digit):
            return ValidationResult(False, "Password must contain uppercase, lowercase, and numeric characters")

        return ValidationResult(True)

    @classmethod
    def validate_slug(cls, slug: str) -> ValidationResult:
        if not slug or not isinstance(slug, str):
            return ValidationResult(False, "Slug is required")
        slug = slug.strip().lower()
        if len(slug) > 255 or not cls.SLUG_PATTERN.match(slug):
            return ValidationResult(False, "Slug may only contain lowercase letters, digits and single hyphens")
        return ValidationResult(True, sanitized_value=slug)

    @classmethod
    def validate_iban(cls, iban: str) -> ValidationResult:
        """Validate an IBAN with the ISO 13616 mod-97 check"""
        if not iban or not isinstance(iban, str):
            return ValidationResult(False, "IBAN is required")

        normalized = re.sub(r'\s+', '', iban).upper()
        if not cls.IBAN_PATTERN.match(normalized):
            return ValidationResult(False, "Invalid IBAN format")

        rearranged = normalized[4:] + normalized[:4]
        numeric = ''.join(str(int(ch, 36)) for ch in rearranged)
        if int(numeric) % 97 != 1:
            return ValidationResult(False, "Invalid IBAN checksum")

        return ValidationResult(True, sanitized_value=normalized)

    @classmethod
    def validate_card_expiry(cls, month, year, now: Optional[datetime] = None) -> ValidationResult:
        """Month 1-12 and a two or four digit year that is not in the past"""
        try:
            month_int = int(str(month).strip())
            year_str = str(year).strip()
            year_int = int(year_str)
        except (TypeError, ValueError):
            return ValidationResult(False, "Expiry month and year must be numeric")

        if not 1 <= month_int <= 12:
            return ValidationResult(False, "Expiry month must be between 1 and 12")

        if len(year_str) == 2:
            year_int += 2000
        elif len(year_str) != 4:
            return ValidationResult(False, "Expiry year must have two or four digits")

        now = now or datetime.utcnow()
        if (year_int, month_int) < (now.year, now.month):
            return ValidationResult(False, "Card has expired")

        return ValidationResult(True, sanitized_value=f"{month_int:02d}/{year_int}")

    @classmethod
    def validate_card_number(cls, card_number: str) -> ValidationResult:
        if not card_number or not isinstance(card_number, str):
            return ValidationResult(False, "Card number is required")
        digits = re.sub(r'[\s-]', '', card_number)
        if not digits.isdigit() or not 12 <= len(digits) <= 19:
            return ValidationResult(False, "Card number must contain 12 to 19 digits")
        return ValidationResult(True, sanitized_value=digits)

    @classmethod
    def validate_verification_code(cls, code) -> ValidationResult:
        if code is None:
            return ValidationResult(False, "Code is required")
        code = str(code).strip()
        if not cls.CODE_PATTERN.match(code):
            return ValidationResult(False, "Code must be 6 digits")
        return ValidationResult(True, sanitized_value=code)

    @classmethod
    def validate_reject_reason(cls, reason) -> ValidationResult:
        if not reason or not isinstance(reason, str) or len(reason.strip()) < 5:
            return ValidationResult(False, "Rejection reason is required and must be at least 5 characters long.")
        if cls._contains_xss(reason):
            return ValidationResult(False, "Rejection reason contains invalid content")
        return ValidationResult(True, sanitized_value=cls.sanitize_input(reason, 1000))

    @classmethod
    def sanitize_input(cls, input_string: str, max_length: int = 1000) -> str:
        """
        Sanitize user input

        Args:
            input_string: Input string to sanitize
            max_length: Maximum allowed length

        Returns:
            Sanitized string
        """
        if not input_string:
            return ""

        sanitized = str(input_string).strip()

        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length]

        # Remove null bytes
        sanitized = sanitized.replace('\x00', '')

        # Normalize line endings
        sanitized = sanitized.replace('\r\n', '\n').replace('\r', '\n')

        return sanitized

    @classmethod
    def _contains_xss(cls, text: str) -> bool:
        """Check if text contains XSS patterns"""
        for pattern in cls.XSS_PATTERNS:
            if re.search(pattern, text, re.IGNORECASE):
                return True
        return False


# Convenience functions for common validations
def validate_email(email: str) -> ValidationResult:
    """Validate email address"""
    return InputValidator.validate_email(email)


def validate_password_strength(password: str) -> ValidationResult:
    """Validate password strength"""
    return InputValidator.validate_password_strength(password)


def validate_slug(slug: str) -> ValidationResult:
    return InputValidator.validate_slug(slug)


def validate_iban(iban: str) -> ValidationResult:
    return InputValidator.validate_iban(iban)


def validate_card_expiry(month, year, now=None) -> ValidationResult:
    return InputValidator.validate_card_expiry(month, year, now)


def validate_card_number(card_number: str) -> ValidationResult:
    return InputValidator.validate_card_number(card_number)


def validate_verification_code(code) -> ValidationResult:
    return InputValidator.validate_verification_code(code)


def validate_reject_reason(reason) -> ValidationResult:
    return InputValidator.validate_reject_reason(reason)


def sanitize_input(input_string: str, max_length: int = 1000) -> str:
    """Sanitize user input"""
    return InputValidator.sanitize_input(input_string, max_length)
