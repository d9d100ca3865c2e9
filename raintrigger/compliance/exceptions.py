"""Errors raised by the rain-trigger compliance core."""


class ComplianceError(Exception):
    """Base class for compliance engine errors."""


class InvalidLocation(ComplianceError, ValueError):
    """Coordinates are missing, non-numeric or out of range."""


class InvalidTimezone(ComplianceError, ValueError):
    """The zone id is not a known IANA timezone."""


class InvalidInput(ComplianceError, ValueError):
    """A precipitation value is negative or not a finite number."""


class WeatherUnavailable(ComplianceError):
    """The weather source failed or timed out.

    Never to be read as "no rain": the engine records it and reports the
    compliance status as unknown.
    """


class PersistenceFailure(ComplianceError):
    """A trigger was computed but could not be written to storage."""


class TriggerNotFound(ComplianceError, LookupError):
    """No trigger exists with the requested id."""


class InvalidTransition(ComplianceError):
    """The trigger is not in a status that allows the requested change."""
