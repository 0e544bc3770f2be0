"""Error taxonomy raised by the progression engine.

The HTTP layer maps these onto status codes in :mod:`academy.main`;
``BenignDuplicate`` is handled inside the engine and never reaches a
caller.
"""


class AcademyError(Exception):
    """Base class for engine errors."""

    code = "academy_error"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class InvalidIdentifier(AcademyError):
    """A lesson, level, badge or user id is not a positive integer."""

    code = "invalid_identifier"
    status_code = 400


class NotFound(AcademyError):
    """The referenced lesson, level, badge or user does not exist."""

    code = "not_found"
    status_code = 404


class TransientStoreFailure(AcademyError):
    """The database failed while reading or writing; nothing was recorded."""

    code = "store_unavailable"
    status_code = 503


class BenignDuplicate(AcademyError):
    """A concurrent request already wrote an equivalent row.

    Raised and handled inside the engine only; it has no HTTP mapping.
    """

    code = "duplicate"


class InvalidCriteria(AcademyError, ValueError):
    """A serialized badge rule could not be decoded."""

    code = "invalid_criteria"
    status_code = 400
