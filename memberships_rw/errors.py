"""Exception hierarchy for memberships-rw.

The HTTP host maps these onto status codes:
- InvalidRequestError (incl. InvalidDateError), DecodeError -> 400
- ConstraintOrTransactionError -> 409
- any other QueryRunnerError -> 503
"""


class MembershipsError(Exception):
    """Base class for all memberships-rw errors."""


class InvalidRequestError(MembershipsError):
    """The record cannot be written as given."""


class InvalidDateError(InvalidRequestError, ValueError):
    """A date field is not a valid RFC 3339 date-time."""

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"invalid {field} '{value}': expected RFC 3339 date-time")


class DecodeError(MembershipsError):
    """The request payload could not be decoded into a record."""


class QueryRunnerError(MembershipsError):
    """The graph database rejected or failed to run a batch."""


class ConstraintOrTransactionError(QueryRunnerError):
    """A uniqueness constraint was violated or the transaction could not complete."""


class BatchTooLargeError(QueryRunnerError):
    """More statements were submitted than the runner accepts in one batch."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"batch of {size} statements exceeds limit of {limit}")
