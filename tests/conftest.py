"""Test configuration and fixtures for LogGuard tests."""

import pytest
from rich.console import Console

from logguard.core.models import DesensitizeConfig, DesensitizeRule, SensitivityType
from logguard.core.patterns import PatternCache, clear_cache


@pytest.fixture
def wide_console():
    """Provide a console wide enough that rule tables never wrap."""
    return Console(width=240, color_system=None)


@pytest.fixture
def cache():
    """Provide a fresh, isolated pattern cache."""
    return PatternCache()


@pytest.fixture(autouse=True)
def clean_shared_cache():
    """Keep the process-wide pattern cache from leaking between tests."""
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def sample_rules():
    """Provide one rule of every sensitivity type."""
    return [
        DesensitizeRule(type=SensitivityType.EMAIL, keep_prefix=1),
        DesensitizeRule(type=SensitivityType.PHONE, keep_prefix=3, keep_suffix=4),
        DesensitizeRule(type=SensitivityType.ID_CARD, keep_prefix=6, keep_suffix=4),
        DesensitizeRule(type=SensitivityType.BANK_CARD, keep_prefix=4, keep_suffix=4),
        DesensitizeRule(type=SensitivityType.PASSWORD, key_names=("password", "pwd")),
        DesensitizeRule(type=SensitivityType.ADDRESS, keep_prefix=6),
        DesensitizeRule(type=SensitivityType.KEY_VALUE, key_names=("token", "secret")),
    ]


@pytest.fixture
def sample_config(sample_rules):
    """Provide a config holding every sample rule."""
    return DesensitizeConfig(rules=sample_rules)


@pytest.fixture
def sample_config_yaml():
    """Provide a sample valid config document in the camelCase file format."""
    return """
enabled: true
defaultMaskChar: "#"
rules:
  - type: PHONE
    keepPrefix: 3
    keepSuffix: 4
  - type: email
    keepPrefix: 2
    maskChar: "*"
  - type: PASSWORD
    keyNames: [password, secret]
  - type: ADDRESS
    enabled: false
performance:
  cachePatterns: false
  maxCacheSize: 10
"""


# Configure test discovery
def pytest_configure(config):
    """Configure pytest settings."""
    # Add custom markers
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
