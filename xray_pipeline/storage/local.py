"""
Local filesystem host store.

Keeps host records, companies and associations as JSON documents under a
base directory, suitable for development and single-machine deployments.
"""

from __future__ import annotations

import json
from pathlib import Path

import aiofiles
from pydantic import ValidationError

from ..core.exceptions import StorageError
from ..core.sets import unique_union
from ..models.app import HostRecord
from ..models.mapping import CompanyMapping
from .interface import HostStore


class LocalHostStore(HostStore):
    """JSON-file backed host store."""

    def __init__(self, base_path: Path) -> None:
        """Initialize local storage.

        Args:
            base_path: Base directory for all storage operations
        """
        self.base_path = base_path.resolve()
        self.hosts_path = self.base_path / "app_hosts"
        self.companies_path = self.base_path / "companies"
        self.associations_path = self.base_path / "associations"

    async def _read_json(self, path: Path, operation: str):
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                return json.loads(await f.read())
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(message=f"Couldn't read {path}", operation=operation, cause=e)

    async def _write_json(self, path: Path, data: object, operation: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(data, indent=2))
        except OSError as e:
            raise StorageError(message=f"Couldn't write {path}", operation=operation, cause=e)

    async def list_app_host_ids(self) -> list[int]:
        if not self.hosts_path.exists():
            return []
        return sorted(int(p.stem) for p in self.hosts_path.glob("*.json") if p.stem.isdigit())

    async def get_app_hosts(self, record_id: int) -> HostRecord:
        data = await self._read_json(self.hosts_path / f"{record_id}.json", "get_app_hosts")
        try:
            return HostRecord.model_validate(data)
        except ValidationError as e:
            raise StorageError(
                message=f"Malformed host record {record_id}",
                operation="get_app_hosts",
                cause=e,
            )

    async def put_app_hosts(self, record: HostRecord) -> None:
        await self._write_json(
            self.hosts_path / f"{record.id}.json",
            record.model_dump(by_alias=True),
            "put_app_hosts",
        )

    async def upsert_company(self, mapping: CompanyMapping) -> bool:
        path = self.companies_path / f"{mapping.company_id}.json"
        if path.exists():
            return False
        await self._write_json(
            path,
            {"id": mapping.company_id, "name": mapping.company_name, "locale": mapping.locale,
             "categories": mapping.categories},
            "upsert_company",
        )
        return True

    async def get_associations(self, app_host_id: int) -> list[int]:
        path = self.associations_path / f"{app_host_id}.json"
        if not path.exists():
            return []
        return await self._read_json(path, "get_associations")

    async def upsert_association(self, app_host_id: int, company_id: int) -> bool:
        existing = await self.get_associations(app_host_id)
        if company_id in existing:
            return False
        await self._write_json(
            self.associations_path / f"{app_host_id}.json",
            unique_union(existing, [company_id]),
            "upsert_association",
        )
        return True
