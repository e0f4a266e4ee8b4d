"""
Engine Exceptions
=================
Raised inside the execution steps and converted into a failed
TradeResult at the execute() boundary. Only ConfigError escapes to
the caller, and only at startup.
"""


class ArbitrageError(Exception):
    """Base class for engine errors."""


class ConfigError(ArbitrageError):
    """Invalid or missing configuration value."""


class BuildError(ArbitrageError):
    """Transaction could not be assembled."""


class SubmissionError(ArbitrageError):
    """Transaction could not be sent to the network."""


class ConfirmationError(ArbitrageError):
    """Transaction was not confirmed within the allowed window."""
