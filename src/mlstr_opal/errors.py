"""Exception types raised by mlstr_opal operations.

Remote-service failures are not wrapped: they surface as the
`requests` exceptions raised by `OpalClient`.
"""

from __future__ import annotations


class MlstrOpalError(Exception):
    """Base class for errors raised by this package."""


class InputFormatError(MlstrOpalError, ValueError):
    """Raised when an input object is not in the expected native format."""


class ConsistencyError(MlstrOpalError, RuntimeError):
    """Raised when server-side data disagrees with itself (not retried)."""


class ShapeValidationError(MlstrOpalError, ValueError):
    """Raised when a dataset, data dictionary or taxonomy fails validation."""


class ArgumentConflictError(MlstrOpalError, ValueError):
    """Raised when mutually exclusive arguments are passed together."""


class MissingArgumentError(MlstrOpalError, ValueError):
    """Raised when a required argument is missing or empty."""


class EmptyProjectError(MlstrOpalError, LookupError):
    """Raised when a project has no table to pull."""
