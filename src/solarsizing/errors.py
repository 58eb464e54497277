"""Exceptions raised by the sizing and billing core."""


class SolarSizingError(Exception):
    """Base exception for all solarsizing errors."""
    pass


class MalformedInputError(SolarSizingError, ValueError):
    """A raw reading or table cell could not be parsed."""
    pass


class DimensionMismatchError(SolarSizingError, ValueError):
    """A series, table or price vector has the wrong shape."""
    pass


class UndefinedTariffPeriodError(SolarSizingError, LookupError):
    """No tariff period is defined for a date/tariff combination."""
    pass


class ConfigError(SolarSizingError):
    """The study configuration is missing a key or holds an invalid value."""
    pass
