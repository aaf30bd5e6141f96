"""
Email format heuristics for registration.

Pure, side-effect-free checks applied in a fixed order, stopping at the
first failing rule. The rules are anti-abuse heuristics and will reject
some genuine addresses; they are registration policy, not RFC 5322
validation.
"""

import re
from enum import Enum

ALLOWED_DOMAINS = ("gmail.com", "protonmail.com")
STRICT_DOMAIN = "gmail.com"
STRICT_DOMAIN_MIN_LOCAL_LENGTH = 6

_BASIC_SHAPE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_STRICT_GRAMMAR = re.compile(
    r'(([^<>()\[\]\\.,;:\s@"]+(\.[^<>()\[\]\\.,;:\s@"]+)*)|(".+"))'
    r"@(gmail\.com|protonmail\.com)"
)
_PLACEHOLDER_LOCAL = re.compile(
    r"^(admin|info|support|contact|test|fake|noreply)@", re.IGNORECASE
)
_NUMERIC_LOCAL = re.compile(r"[0-9]+")
_NAME_WITH_DIGITS = re.compile(r"[a-z]+[0-9]{4,}", re.IGNORECASE)
_REPEATED_CHAR = re.compile(r"(.)\1{4,}")


class FormatRule(str, Enum):
    """Format rules in evaluation order."""

    SHAPE = "shape"
    GRAMMAR = "grammar"
    PLACEHOLDER = "placeholder"
    TOO_SHORT = "too_short"
    NUMERIC = "numeric"
    NAME_WITH_DIGITS = "name_with_digits"
    STRICT_DOMAIN_LENGTH = "strict_domain_length"
    REPEATED_CHARACTER = "repeated_character"


class EmailFormatValidator:
    """Syntactic and heuristic email checks."""

    def first_violation(self, email: str) -> FormatRule | None:
        """
        Return the first rule the email breaks, or None when it passes.

        Order: shape, strict grammar with domain allow-list, placeholder
        local parts, local part length <= 2, numeric-only local part,
        short name plus 4+ digits, minimum length on the strict domain,
        a character repeated 5+ times in a row.
        """
        if not _BASIC_SHAPE.fullmatch(email):
            return FormatRule.SHAPE
        if not _STRICT_GRAMMAR.fullmatch(email):
            return FormatRule.GRAMMAR
        if _PLACEHOLDER_LOCAL.match(email):
            return FormatRule.PLACEHOLDER

        local, domain = email.rsplit("@", 1)

        if len(local) <= 2:
            return FormatRule.TOO_SHORT
        if _NUMERIC_LOCAL.fullmatch(local):
            return FormatRule.NUMERIC
        if _NAME_WITH_DIGITS.fullmatch(local):
            return FormatRule.NAME_WITH_DIGITS
        if domain == STRICT_DOMAIN and len(local) < STRICT_DOMAIN_MIN_LOCAL_LENGTH:
            return FormatRule.STRICT_DOMAIN_LENGTH
        if _REPEATED_CHAR.search(local):
            return FormatRule.REPEATED_CHARACTER
        return None

    def is_valid(self, email: str) -> bool:
        return self.first_violation(email) is None
