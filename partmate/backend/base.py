from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from partmate.core.identity import Identity


class Backend(ABC):
    """Table, object storage and auth operations of the hosted backend.

    Implementations raise ``BackendError`` with the service's own message for
    any failed request and ``Unauthenticated`` for rejected credentials.
    """

    @abstractmethod
    def sign_in(self, email: str, password: str) -> Identity:
        ...

    def sign_out(self, identity: Identity) -> None:
        return None

    @abstractmethod
    def select(
        self,
        identity: Identity,
        table: str,
        *,
        search: Optional[str] = None,
        search_columns: Sequence[str] = (),
        eq: Optional[dict] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        ...

    @abstractmethod
    def insert(self, identity: Identity, table: str, values: dict) -> dict:
        ...

    @abstractmethod
    def update(self, identity: Identity, table: str, row_id: str, values: dict) -> dict:
        ...

    @abstractmethod
    def delete(self, identity: Identity, table: str, row_id: str) -> None:
        ...

    @abstractmethod
    def upload(
        self,
        identity: Identity,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
    ) -> None:
        ...

    @abstractmethod
    def public_url(self, bucket: str, path: str) -> str:
        ...
