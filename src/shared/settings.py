"""Store settings provider.

Pricing reads its rates through ``SettingsProvider.get_value`` so admin-edited
values (tax rate, flat shipping rate, free-shipping threshold) can come from
any backing store. The default provider is static, seeded from environment
variables.
"""

import os
from abc import ABC, abstractmethod

DEFAULTS: dict[str, float] = {
    "tax_rate": 0.13,
    "shipping_rate": 200.0,
    "free_shipping_threshold": 200.0,
}


class SettingsProvider(ABC):
    @abstractmethod
    def get_value(self, key: str, default: float) -> float:
        """Return the numeric setting, or ``default`` when it is not configured."""
        ...


class StaticSettings(SettingsProvider):
    """Settings held in memory."""

    def __init__(self, values: dict[str, float] | None = None) -> None:
        self._values = dict(values or {})

    def get_value(self, key: str, default: float) -> float:
        return float(self._values.get(key, default))

    def update(self, **values: float) -> None:
        self._values.update(values)


_current_settings: SettingsProvider | None = None


def _from_env() -> StaticSettings:
    values = {}
    for key in DEFAULTS:
        raw = os.environ.get(key.upper())
        if raw is not None:
            values[key] = float(raw)
    return StaticSettings(values)


def get_settings() -> SettingsProvider:
    global _current_settings
    if _current_settings is None:
        _current_settings = _from_env()
    return _current_settings


def set_settings(settings: SettingsProvider) -> None:
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    global _current_settings
    _current_settings = None
