"""
Masking strategies, one per sensitivity type.

Regex strategies (EMAIL, PHONE, ID_CARD, BANK_CARD, ADDRESS) locate values by
their shape and redact each match with a per-type function. Key-name
strategies (PASSWORD, KEY_VALUE) locate values by the field name in front of
them, so the value itself can have any shape.

Every strategy is stateless apart from the injected PatternCache, and none of
them lets an exception out of ``matches`` or ``desensitize``: a bad pattern
turns into "no match" / "input unchanged" plus a warning in the log.
"""

import logging
import re
from typing import Callable, Optional, Protocol, Sequence, assert_never

from logguard.core.errors import InvalidPatternError
from logguard.core.models import DesensitizeRule, SensitivityType
from logguard.core.patterns import PatternCache, shared_cache

logger = logging.getLogger(__name__)

# ASCII mode: CJK text is not a word character, so "手机号13812345678" still has a \b
EMAIL_PATTERN = r"(?a)\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b"
PHONE_PATTERN = r"(?a)\b1[3-9]\d{9}\b"
ID_CARD_PATTERN = (
    r"(?a)\b[1-9]\d{5}(18|19|20)\d{2}(0[1-9]|1[0-2])(0[1-9]|[12]\d|3[01])\d{3}[\dXx]\b"
)
BANK_CARD_PATTERN = r"(?a)\b\d{16,19}\b"
ADDRESS_PATTERN = r"[\u4e00-\u9fa5]{2,}(省|市|区|县|镇|街道|路|巷|号|室)[\u4e00-\u9fa5]{2,}"

DEFAULT_SEPARATORS = ("=", ":", "=>")

PASSWORD_MASK_LENGTH = 6


class DesensitizeStrategy(Protocol):
    supported_type: SensitivityType

    def matches(self, text: Optional[str], rule: Optional[DesensitizeRule]) -> bool: ...

    def desensitize(
        self, text: Optional[str], rule: Optional[DesensitizeRule]
    ) -> Optional[str]: ...

    def generate_mask(self, length: int, rule: DesensitizeRule) -> str: ...


def generate_mask(length: int, rule: DesensitizeRule) -> str:
    """Filler of ``rule.mask_char``, never shorter than one character."""
    return rule.mask_char * max(1, length)


def redact_matches(
    text: str, pattern: re.Pattern[str], redact: Callable[[re.Match[str]], str]
) -> str:
    """Replace every non-overlapping match of ``pattern`` with ``redact(match)``.

    Text without a match is returned as the same object.
    """
    if pattern.search(text) is None:
        return text
    return pattern.sub(redact, text)


def keep_ends(value: str, rule: DesensitizeRule, keep_prefix: int, keep_suffix: int) -> str:
    length = len(value)
    keep_prefix = min(keep_prefix, length)
    keep_suffix = min(keep_suffix, length - keep_prefix)
    if keep_prefix + keep_suffix >= length:
        return value
    mask = generate_mask(length - keep_prefix - keep_suffix, rule)
    return value[:keep_prefix] + mask + value[length - keep_suffix :]


# Per-type redaction of a single matched value


def redact_default(value: str, rule: DesensitizeRule) -> str:
    return keep_ends(value, rule, rule.keep_prefix, rule.keep_suffix)


def redact_phone(value: str, rule: DesensitizeRule) -> str:
    if len(value) != 11:
        return value
    return keep_ends(value, rule, min(rule.keep_prefix, 6), min(rule.keep_suffix, 4))


def redact_bank_card(value: str, rule: DesensitizeRule) -> str:
    if len(value) < 16:
        return value
    return keep_ends(value, rule, min(rule.keep_prefix, 6), min(rule.keep_suffix, 4))


def redact_id_card(value: str, rule: DesensitizeRule) -> str:
    if len(value) < 15:
        return value
    return keep_ends(value, rule, min(rule.keep_prefix, 8), min(rule.keep_suffix, 4))


def redact_email(value: str, rule: DesensitizeRule) -> str:
    """Mask at most three username characters; the domain stays readable."""
    at_index = value.find("@")
    if at_index <= 0:
        return value

    username, domain = value[:at_index], value[at_index:]
    keep = max(1, rule.keep_prefix)
    if len(username) <= keep:
        return value

    mask_length = min(len(username) - keep, 3)
    return username[:keep] + generate_mask(mask_length, rule) + domain


def redact_address(value: str, rule: DesensitizeRule) -> str:
    """Keep the prefix and mask the rest.

    ``keep_suffix`` shortens the mask but the suffix itself is dropped, so
    the tail of an address is never written out.
    """
    length = len(value)
    if length < 8:
        return value

    keep_prefix = min(rule.keep_prefix, length // 2)
    mask_length = length - keep_prefix - rule.keep_suffix
    if mask_length <= 0:
        return value
    return value[:keep_prefix] + generate_mask(mask_length, rule)


class RegexStrategy:
    """Shape-based strategy: rule pattern (or the built-in default) plus a redactor."""

    def __init__(
        self,
        supported_type: SensitivityType,
        default_pattern: str,
        redact: Callable[[str, DesensitizeRule], str],
        cache: Optional[PatternCache] = None,
    ):
        self.supported_type = supported_type
        self.default_pattern = default_pattern
        self.redact = redact
        self.cache = cache if cache is not None else shared_cache()

    def _is_supported(self, rule: Optional[DesensitizeRule]) -> bool:
        return rule is not None and rule.type == self.supported_type

    def _pattern_text(self, rule: DesensitizeRule) -> str:
        return self.default_pattern if rule.pattern is None else rule.pattern

    def generate_mask(self, length: int, rule: DesensitizeRule) -> str:
        return generate_mask(length, rule)

    def matches(self, text: Optional[str], rule: Optional[DesensitizeRule]) -> bool:
        if text is None or not self._is_supported(rule):
            return False
        pattern_text = self._pattern_text(rule)
        if not pattern_text:
            return False
        try:
            return self.cache.compile(pattern_text).search(text) is not None
        except InvalidPatternError as e:
            logger.warning("Failed to compile pattern for rule %s: %s", rule.type.value, e)
            return False

    def desensitize(
        self, text: Optional[str], rule: Optional[DesensitizeRule]
    ) -> Optional[str]:
        if text is None or not self._is_supported(rule):
            return text
        pattern_text = self._pattern_text(rule)
        if not pattern_text:
            return text
        try:
            pattern = self.cache.compile(pattern_text)
        except InvalidPatternError as e:
            logger.warning("Failed to desensitize with rule %s: %s", rule.type.value, e)
            return text
        return redact_matches(text, pattern, lambda m: self.redact(m.group(0), rule))


class KeyNameStrategy:
    """Field-name strategy for ``key=value``, ``key: value``, ``key=>value``, ``"key":"value"``.

    ``mask_length`` maps the original value to the size of its mask.
    """

    def __init__(
        self,
        supported_type: SensitivityType,
        mask_length: Callable[[str], int],
        separators: Sequence[str] = DEFAULT_SEPARATORS,
        cache: Optional[PatternCache] = None,
    ):
        self.supported_type = supported_type
        self.mask_length = mask_length
        # Longest first so "=>" wins over "=" in the alternation
        self.separators = tuple(sorted((s for s in separators if s), key=len, reverse=True))
        self.cache = cache if cache is not None else shared_cache()
        self._separator_pattern = "|".join(re.escape(s) for s in self.separators)

    def _is_supported(self, rule: Optional[DesensitizeRule]) -> bool:
        return rule is not None and rule.type == self.supported_type

    def generate_mask(self, length: int, rule: DesensitizeRule) -> str:
        return generate_mask(length, rule)

    def key_pattern(self, key_name: str) -> str:
        """Pattern text with the key and delimiter in group 1 and the value in group 2."""
        return rf'(?i)("?{re.escape(key_name)}"?\s*(?:{self._separator_pattern})\s*"?)([^,}}\s"]+)'

    def matches(self, text: Optional[str], rule: Optional[DesensitizeRule]) -> bool:
        if text is None or not self._is_supported(rule) or not rule.key_names:
            return False
        lowered = text.lower()
        for key_name in rule.key_names:
            key = key_name.lower()
            if not key:
                continue
            if f'"{key}"' in lowered:
                return True
            if any(key + separator in lowered for separator in self.separators):
                return True
        return False

    def desensitize(
        self, text: Optional[str], rule: Optional[DesensitizeRule]
    ) -> Optional[str]:
        if text is None or not self._is_supported(rule) or not rule.key_names:
            return text

        def mask_value(match: re.Match[str]) -> str:
            value = match.group(2)
            return match.group(1) + generate_mask(self.mask_length(value), rule)

        # Keys and separators are escaped, so these patterns always compile
        result = text
        for key_name in rule.key_names:
            if not key_name:
                continue
            pattern = self.cache.compile(self.key_pattern(key_name))
            result = redact_matches(result, pattern, mask_value)
        return result


def build_strategy(
    sensitivity_type: SensitivityType,
    cache: Optional[PatternCache] = None,
    separators: Sequence[str] = DEFAULT_SEPARATORS,
) -> DesensitizeStrategy:
    """Create the strategy that handles ``sensitivity_type``."""
    match sensitivity_type:
        case SensitivityType.EMAIL:
            return RegexStrategy(sensitivity_type, EMAIL_PATTERN, redact_email, cache)
        case SensitivityType.PHONE:
            return RegexStrategy(sensitivity_type, PHONE_PATTERN, redact_phone, cache)
        case SensitivityType.ID_CARD:
            return RegexStrategy(sensitivity_type, ID_CARD_PATTERN, redact_id_card, cache)
        case SensitivityType.BANK_CARD:
            return RegexStrategy(sensitivity_type, BANK_CARD_PATTERN, redact_bank_card, cache)
        case SensitivityType.ADDRESS:
            return RegexStrategy(sensitivity_type, ADDRESS_PATTERN, redact_address, cache)
        case SensitivityType.PASSWORD:
            return KeyNameStrategy(
                sensitivity_type, lambda value: PASSWORD_MASK_LENGTH, separators, cache
            )
        case SensitivityType.KEY_VALUE:
            return KeyNameStrategy(
                sensitivity_type, lambda value: max(3, min(len(value), 6)), separators, cache
            )
        case _:
            assert_never(sensitivity_type)
