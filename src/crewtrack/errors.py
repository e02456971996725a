# crewtrack/errors

"""
crewtrack.errors

Central exception hierarchy for crewtrack.

The geometry and ETA core never raises for missing or malformed data; these
errors belong to the boundary (files, configuration, the check-in store).
Callers can catch CrewtrackError (broad) or specific subclasses (narrow).
"""


class CrewtrackError(RuntimeError):
    """Base class for all crewtrack runtime errors."""


class ConfigError(CrewtrackError):
    """A configuration file exists but could not be parsed."""


# ---- Course errors -----------------------------

class CourseError(CrewtrackError):
    """Errors related to the course track or its topology."""

class InvalidGpxError(CourseError):
    """GPX file could not be parsed as XML."""

class TopologyError(CourseError, ValueError):
    """Race topology parameters are inconsistent (e.g. start beyond finish)."""


# ---- Plan / check-in errors --------------------

class PlanError(CrewtrackError):
    """Pacing plan could not be read or contained no stations."""

class CheckinError(CrewtrackError, ValueError):
    """A check-in was rejected (bad bib, distance or clock time)."""
