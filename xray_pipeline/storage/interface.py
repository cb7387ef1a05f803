"""
Host store interface.

Defines the storage collaborator the mapping pipeline reads host records
from and writes company attributions to. All upserts are idempotent.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models.app import HostRecord
from ..models.mapping import CompanyMapping


class HostStore(ABC):
    """Abstract host and company store."""

    @abstractmethod
    async def list_app_host_ids(self) -> list[int]:
        """List the identifiers of all app host records.

        Returns:
            Record identifiers in storage order.
        """
        ...

    @abstractmethod
    async def get_app_hosts(self, record_id: int) -> HostRecord:
        """Load one app host record.

        Args:
            record_id: Identifier returned by list_app_host_ids.

        Returns:
            The record with its hostnames.

        Raises:
            StorageError: If the record cannot be loaded.
        """
        ...

    @abstractmethod
    async def put_app_hosts(self, record: HostRecord) -> None:
        """Create or replace an app host record."""
        ...

    @abstractmethod
    async def upsert_company(self, mapping: CompanyMapping) -> bool:
        """Insert the mapping's company if it is new.

        Returns:
            True if the company was inserted, False if it already existed.
        """
        ...

    @abstractmethod
    async def upsert_association(self, app_host_id: int, company_id: int) -> bool:
        """Associate a record with a company if not already associated.

        Returns:
            True if the association was inserted, False if it already existed.
        """
        ...

    @abstractmethod
    async def get_associations(self, app_host_id: int) -> list[int]:
        """Company identifiers associated with a record."""
        ...
