"""
Schema for Desensitize Configuration
------------------------------------

This module defines the **strict JSON Schema** that a desensitize config file
must satisfy before it is turned into pydantic models. Checking the raw YAML
document first gives precise errors for typos such as an unknown rule key or
a two-character mask, instead of silently ignoring them.

Both the snake_case field names and the camelCase names used by existing
log-desensitize configs are accepted.
"""

# One masking rule.
#
# Example of a valid object:
# {
#     "type": "PHONE",
#     "pattern": "\\b1[3-9]\\d{9}\\b",
#     "keepPrefix": 3,
#     "keepSuffix": 4,
#     "maskChar": "*"
# }

_NON_NEGATIVE_INT = {"type": "integer", "minimum": 0}
_MASK_CHAR = {"type": "string", "minLength": 1, "maxLength": 1}
_KEY_LIST = {"type": ["array", "null"], "items": {"type": "string", "minLength": 1}}
_SENSITIVE_KEYS = {"type": "array", "items": {"type": "string", "minLength": 1}}

RULE_SCHEMA = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "type": {
            "type": "string",
            "pattern": r"(?i)^(EMAIL|PHONE|ID[_-]CARD|BANK[_-]CARD|ADDRESS|PASSWORD|KEY[_-]VALUE)$",
        },
        "enabled": {"type": "boolean"},
        "pattern": {"type": ["string", "null"]},
        "description": {"type": ["string", "null"]},
        "keep_prefix": _NON_NEGATIVE_INT,
        "keepPrefix": _NON_NEGATIVE_INT,
        "keep_suffix": _NON_NEGATIVE_INT,
        "keepSuffix": _NON_NEGATIVE_INT,
        "mask_char": _MASK_CHAR,
        "maskChar": _MASK_CHAR,
        "key_names": _KEY_LIST,
        "keyNames": _KEY_LIST,
    },
    "additionalProperties": False,       # Unknown keys are almost always typos
}

# Top-level config document.
#
# Example:
# {
#   "enabled": true,
#   "rules": [ { "type": "EMAIL", "keepPrefix": 1 } ],
#   "performance": { "cachePatterns": true, "maxCacheSize": 100 }
# }

DESENSITIZE_CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "enabled": {"type": "boolean"},
        "default_mask_char": _MASK_CHAR,
        "defaultMaskChar": _MASK_CHAR,
        "rules": {"type": "array", "items": RULE_SCHEMA},
        "key_value": {"$ref": "#/$defs/keyValue"},
        "keyValue": {"$ref": "#/$defs/keyValue"},
        "performance": {
            "type": "object",
            "properties": {
                "cache_patterns": {"type": "boolean"},
                "cachePatterns": {"type": "boolean"},
                "max_cache_size": _NON_NEGATIVE_INT,
                "maxCacheSize": _NON_NEGATIVE_INT,
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
    "$defs": {
        "keyValue": {
            "type": "object",
            "properties": {
                "enabled": {"type": "boolean"},
                "separators": {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                    "minItems": 1,
                },
                "sensitive_keys": _SENSITIVE_KEYS,
                "sensitiveKeys": _SENSITIVE_KEYS,
            },
            "additionalProperties": False,
        }
    },
}
