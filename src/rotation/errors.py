class RotationError(Exception):
    pass


class ScheduleConfigError(RotationError, ValueError):
    """The configuration cannot produce a schedule; raised before any work starts."""


class ScheduleGenerationError(RotationError):
    """Every multi-start attempt came back without a single match."""


class ScheduleEditError(RotationError, ValueError):
    """A post-hoc edit (result, rename, swap) refers to something invalid."""
