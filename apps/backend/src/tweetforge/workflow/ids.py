"""Unique identifier sources used while building workflow documents."""

import uuid
from typing import Protocol


class IdSource(Protocol):
    """Produces identifiers that are unique within one built document."""

    def new_id(self) -> str: ...


class UuidIdSource:
    """Default id source backed by random UUID4 values."""

    def new_id(self) -> str:
        return str(uuid.uuid4())
