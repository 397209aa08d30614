from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SensitivityType(str, Enum):
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    ID_CARD = "ID_CARD"
    BANK_CARD = "BANK_CARD"
    ADDRESS = "ADDRESS"
    PASSWORD = "PASSWORD"
    KEY_VALUE = "KEY_VALUE"

    @classmethod
    def parse(cls, value: str) -> "SensitivityType":
        """Accept enum names in any case, with '-' or '_' separators."""
        return cls(value.strip().upper().replace("-", "_"))


class DesensitizeRule(BaseModel):
    """How one sensitivity type is detected and masked.

    Rules are frozen: strategies read them but never change them, so one
    rule can be shared across threads and across configurations.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: SensitivityType
    enabled: bool = True
    pattern: Optional[str] = None
    keep_prefix: int = Field(default=0, ge=0, alias="keepPrefix")
    keep_suffix: int = Field(default=0, ge=0, alias="keepSuffix")
    mask_char: str = Field(default="*", min_length=1, max_length=1, alias="maskChar")
    description: Optional[str] = None
    # Only read by the key-name strategies (PASSWORD, KEY_VALUE)
    key_names: tuple[str, ...] = Field(default=(), alias="keyNames")

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return SensitivityType.parse(value)
        return value

    @field_validator("key_names", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return () if value is None else value


class KeyValueConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = True
    separators: list[str] = Field(default_factory=lambda: ["=", ":", "=>"], min_length=1)
    sensitive_keys: list[str] = Field(
        default_factory=lambda: [
            "password",
            "pwd",
            "passwd",
            "token",
            "apiKey",
            "secret",
            "accessToken",
            "refreshToken",
            "authorization",
        ],
        alias="sensitiveKeys",
    )


class PerformanceConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cache_patterns: bool = Field(default=True, alias="cachePatterns")
    max_cache_size: int = Field(default=100, ge=0, alias="maxCacheSize")


class DesensitizeConfig(BaseModel):
    """Process-wide masking configuration: master switch, ordered rules, tuning."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = True
    default_mask_char: str = Field(
        default="*", min_length=1, max_length=1, alias="defaultMaskChar"
    )
    rules: list[DesensitizeRule] = Field(default_factory=list)
    key_value: KeyValueConfig = Field(default_factory=KeyValueConfig, alias="keyValue")
    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)

    @model_validator(mode="before")
    @classmethod
    def _inherit_default_mask_char(cls, data: Any) -> Any:
        # Raw rule mappings without their own mask char use the config default
        if not isinstance(data, dict):
            return data
        default_char = data.get("default_mask_char", data.get("defaultMaskChar"))
        if default_char is None or not isinstance(data.get("rules"), list):
            return data
        rules = []
        for rule in data["rules"]:
            if isinstance(rule, dict) and "mask_char" not in rule and "maskChar" not in rule:
                rule = {**rule, "mask_char": default_char}
            rules.append(rule)
        return {**data, "rules": rules}

    def enabled_rules(self) -> list[DesensitizeRule]:
        return [rule for rule in self.rules if rule.enabled]

    def rule_by_type(self, sensitivity_type: SensitivityType) -> Optional[DesensitizeRule]:
        """First configured rule of the given type, enabled or not."""
        for rule in self.rules:
            if rule.type == sensitivity_type:
                return rule
        return None


def default_config() -> DesensitizeConfig:
    """Built-in rule set used when no configuration file can be loaded."""
    return DesensitizeConfig(
        enabled=True,
        rules=[
            DesensitizeRule(type=SensitivityType.EMAIL, keep_prefix=1, keep_suffix=0),
            DesensitizeRule(type=SensitivityType.PHONE, keep_prefix=3, keep_suffix=4),
            DesensitizeRule(type=SensitivityType.ID_CARD, keep_prefix=6, keep_suffix=4),
            DesensitizeRule(type=SensitivityType.BANK_CARD, keep_prefix=4, keep_suffix=4),
            DesensitizeRule(
                type=SensitivityType.PASSWORD,
                key_names=("password", "pwd", "passwd", "token", "apiKey", "secret"),
            ),
            DesensitizeRule(type=SensitivityType.ADDRESS, keep_prefix=6, keep_suffix=0),
        ],
    )
