from __future__ import annotations


class NetIndicatorError(Exception):
    """Base error for the network indicator."""


class ConfigError(NetIndicatorError):
    pass


class InvalidConfigurationError(ConfigError):
    pass


class CounterReadError(NetIndicatorError):
    pass


class DisplaySinkError(NetIndicatorError):
    pass
