"""Error taxonomy for the gestation and schedule engine."""


class MaternaError(Exception):
    """Base class for engine errors."""


class NotConfigured(MaternaError):
    """The owner has not set a last menstrual period date yet.

    This is the normal state of every new owner, not a failure.
    """


class StoreUnavailable(MaternaError):
    """A persistence call failed or returned data that could not be decoded."""


class InvalidRule(MaternaError):
    """A recurrence rule cannot be expanded (bad start, end before start, unknown unit)."""


class DuplicateAnchorRace(MaternaError):
    """Two first-time creations of the same owner's anchor collided.

    Raised and swallowed inside the store accessor only.
    """
