"""
The desensitization engine: applies every enabled rule of a configuration to
a piece of text, in order, using one strategy per sensitivity type.

This is what the logging integration calls for each formatted line. The
configuration can be swapped at runtime with ``reload``; each call works on
one consistent snapshot of configuration, cache and strategies.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Mapping, Optional

from logguard.core.models import (
    DesensitizeConfig,
    DesensitizeRule,
    SensitivityType,
    default_config,
)
from logguard.core.patterns import PatternCache
from logguard.core.strategies import DesensitizeStrategy, build_strategy

logger = logging.getLogger(__name__)

FAILED_PLACEHOLDER = "[DESENSITIZE_FAILED]"


@dataclass(frozen=True)
class EngineState:
    config: DesensitizeConfig
    cache: PatternCache
    strategies: Mapping[SensitivityType, DesensitizeStrategy]
    # Enabled rules, with KEY_VALUE rules resolved against config.key_value
    rules: tuple[DesensitizeRule, ...]


def _resolve_rules(config: DesensitizeConfig) -> tuple[DesensitizeRule, ...]:
    resolved = []
    for rule in config.enabled_rules():
        if rule.type == SensitivityType.KEY_VALUE:
            if not config.key_value.enabled:
                continue
            if not rule.key_names:
                rule = rule.model_copy(
                    update={"key_names": tuple(config.key_value.sensitive_keys)}
                )
        resolved.append(rule)
    return tuple(resolved)


def build_state(
    config: DesensitizeConfig, cache: Optional[PatternCache] = None
) -> EngineState:
    cache = cache if cache is not None else PatternCache.from_config(config)
    separators = config.key_value.separators
    strategies = {
        sensitivity_type: build_strategy(sensitivity_type, cache, separators)
        for sensitivity_type in SensitivityType
    }
    return EngineState(
        config=config, cache=cache, strategies=strategies, rules=_resolve_rules(config)
    )


class Desensitizer:
    """Applies a DesensitizeConfig to free-form text."""

    def __init__(
        self,
        config: Optional[DesensitizeConfig] = None,
        cache: Optional[PatternCache] = None,
    ):
        self._state = build_state(config or default_config(), cache)
        self._error_count = 0
        self._error_lock = threading.Lock()

    @property
    def config(self) -> DesensitizeConfig:
        return self._state.config

    @property
    def cache(self) -> PatternCache:
        return self._state.cache

    @property
    def rules(self) -> tuple[DesensitizeRule, ...]:
        return self._state.rules

    @property
    def error_count(self) -> int:
        return self._error_count

    def reset_error_count(self) -> None:
        with self._error_lock:
            self._error_count = 0

    def reload(self, config: DesensitizeConfig, cache: Optional[PatternCache] = None) -> None:
        """Swap in a new configuration. Calls already running keep the old one."""
        self._state = build_state(config, cache)
        logger.info(
            "Desensitize config reloaded: %d rules, enabled=%s, cache=%s",
            len(config.rules),
            config.enabled,
            config.performance.cache_patterns,
        )

    def strategy_for(self, sensitivity_type: SensitivityType) -> DesensitizeStrategy:
        return self._state.strategies[sensitivity_type]

    def rule_for(self, sensitivity_type: SensitivityType) -> Optional[DesensitizeRule]:
        """The effective enabled rule of this type, if any."""
        for rule in self._state.rules:
            if rule.type == sensitivity_type:
                return rule
        return None

    def desensitize(self, text: Optional[str], rule: Optional[DesensitizeRule]) -> Optional[str]:
        if rule is None:
            return text
        return self._state.strategies[rule.type].desensitize(text, rule)

    def matches(self, text: Optional[str], rule: Optional[DesensitizeRule]) -> bool:
        if rule is None:
            return False
        return self._state.strategies[rule.type].matches(text, rule)

    def matching_rules(self, text: Optional[str]) -> list[DesensitizeRule]:
        state = self._state
        return [rule for rule in state.rules if state.strategies[rule.type].matches(text, rule)]

    def apply(self, text: Optional[str]) -> Optional[str]:
        """Run every enabled rule over ``text``.

        If a strategy fails unexpectedly the whole text is replaced by
        FAILED_PLACEHOLDER, since a partly masked line may still leak data.
        """
        if not text:
            return text
        state = self._state
        if not state.config.enabled:
            return text

        result = text
        for rule in state.rules:
            try:
                result = state.strategies[rule.type].desensitize(result, rule)
            except Exception:
                with self._error_lock:
                    self._error_count += 1
                logger.exception("Failed to apply desensitize rule %s", rule.type.value)
                return FAILED_PLACEHOLDER
        return result


_default_strategies: dict[SensitivityType, DesensitizeStrategy] = {
    sensitivity_type: build_strategy(sensitivity_type) for sensitivity_type in SensitivityType
}


def desensitize(text: Optional[str], rule: Optional[DesensitizeRule]) -> Optional[str]:
    """Mask ``text`` with a single rule, using the process-wide pattern cache."""
    if rule is None:
        return text
    return _default_strategies[rule.type].desensitize(text, rule)


def matches(text: Optional[str], rule: Optional[DesensitizeRule]) -> bool:
    if rule is None:
        return False
    return _default_strategies[rule.type].matches(text, rule)
