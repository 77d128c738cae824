"""
Deterministic PII detection and anonymization.

Patterns run in a fixed priority order on the progressively anonymized text,
so a span claimed by one entity type (e.g. a personnummer) is not matched again
by a broader pattern (e.g. phone numbers).
"""

import logging
import re

logger = logging.getLogger(__name__)

_PATTERNS: dict[str, re.Pattern[str]] = {
    "EMAIL_ADDRESS": re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"),
    "IBAN_CODE": re.compile(r"\b[A-Z]{2}\d{2}(?:\s?[A-Z0-9]{4}){2,7}(?:\s?[A-Z0-9]{1,3})?\b"),
    "CREDIT_CARD": re.compile(r"\b\d(?:[ -]?\d){12,18}\b"),
    "SE_PERSONNUMMER": re.compile(r"\b(?:19|20)?\d{2}(?:0[1-9]|1[0-2])(?:0[1-9]|[12]\d|3[01])[-+]?\d{4}\b"),
    "IP_ADDRESS": re.compile(r"\b(?:(?:25[0-5]|2[0-4]\d|1?\d?\d)\.){3}(?:25[0-5]|2[0-4]\d|1?\d?\d)\b"),
    "PHONE_NUMBER": re.compile(r"(?<![\w+])(?:\+\d{1,3}[\s-]?|0)\d{1,4}(?:[\s-]?\d{2,4}){2,4}(?!\w)"),
}

SUPPORTED_ENTITIES: tuple[str, ...] = tuple(_PATTERNS)

# Day-month-year and year-month-day shapes, e.g. 05-06-2023, 05.06.23, 2023-06-05
_DATE_RE = re.compile(r"\d{1,2}([-./])\d{1,2}\1(?:\d{4}|\d{2})|\d{4}([-./])\d{1,2}\2\d{1,2}")
_MIN_PHONE_DIGITS = 8


def _phone_ok(candidate: str) -> bool:
    digits = sum(c.isdigit() for c in candidate)
    if digits < _MIN_PHONE_DIGITS:
        return False
    return _DATE_RE.fullmatch(candidate.strip()) is None


def _luhn_ok(candidate: str) -> bool:
    digits = [int(c) for c in candidate if c.isdigit()]
    if not 13 <= len(digits) <= 19:
        return False
    total = 0
    for i, d in enumerate(reversed(digits)):
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return total % 10 == 0


def detect_pii(text: str, entities: list[str]) -> tuple[dict[str, list[str]], str]:
    """
    Find PII of the requested entity types.
    Returns (entity type -> matched values, text with each match replaced by <ENTITY_TYPE>).
    Unknown entity types are ignored with a warning.
    """
    unknown = [e for e in entities if e not in _PATTERNS]
    if unknown:
        logger.warning("[pii:detect_pii] ignoring unsupported entities=%s", unknown)
    wanted = set(entities)
    detected: dict[str, list[str]] = {}
    anonymized = text
    for entity, pattern in _PATTERNS.items():
        if entity not in wanted:
            continue
        found: list[str] = []

        def _replace(match: re.Match[str]) -> str:
            value = match.group(0)
            if entity == "CREDIT_CARD" and not _luhn_ok(value):
                return value
            if entity == "PHONE_NUMBER" and not _phone_ok(value):
                return value
            found.append(value)
            return f"<{entity}>"

        anonymized = pattern.sub(_replace, anonymized)
        if found:
            detected[entity] = found
    logger.info("[pii:detect_pii] OUT entities=%s", {k: len(v) for k, v in detected.items()})
    return detected, anonymized
