"""Capability interface between the HTTP host and a record repository."""

from typing import IO, Any, Protocol, runtime_checkable


@runtime_checkable
class RWService(Protocol):
    """What the host needs from a repository to serve read/write endpoints.

    Errors are raised, not returned; see memberships_rw.errors for the types
    the host maps onto status codes.
    """

    def initialise(self) -> None:
        ...

    def read(self, uuid: str) -> tuple[Any, bool]:
        """Return (record, found)."""
        ...

    def write(self, record: Any) -> None:
        ...

    def delete(self, uuid: str) -> bool:
        """Return True if a record was deleted."""
        ...

    def count(self) -> int:
        ...

    def check(self) -> None:
        """Raise if the backing store is unreachable."""
        ...

    def decode_json(self, stream: IO[str] | IO[bytes] | str | bytes) -> tuple[Any, str]:
        """Return (record, uuid) decoded from a request body."""
        ...
