"""
App-related data models.

An App is identified either by its store identity (id, store, region,
version) for persisted apps, or by the raw package path for ad-hoc analysis.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Permission(BaseModel):
    """A permission declared in a package manifest."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Permission name (e.g., android.permission.CAMERA)")
    max_sdk_version: str = Field(default="", description="maxSdkVersion attribute, if any")


class App(BaseModel):
    """An application package and the artifacts derived from it."""

    db_id: int = Field(default=0, description="Database row identifier")
    id: str = Field(default="", description="Package identifier")
    store: str = Field(default="", description="Store the package came from")
    region: str = Field(default="", description="Store region")
    version: str = Field(default="", description="Package version")

    path: Path | None = Field(default=None, description="Explicit package path override")
    unpack_dir: Path | None = Field(
        default=None, description="Artifact directory, recorded on first resolution"
    )

    permissions: list[Permission] = Field(default_factory=list)
    hosts: list[str] = Field(default_factory=list)
    packages: list[str] = Field(default_factory=list)
    icon: str = Field(default="")
    uses_reflection: bool = Field(default=False)

    @classmethod
    def from_identity(cls, db_id: int, id: str, store: str, region: str, version: str) -> App:
        """Construct a persisted app from its identity fields."""
        return cls(db_id=db_id, id=id, store=store, region=region, version=version)

    @classmethod
    def by_path(cls, path: Path | str) -> App:
        """Construct an ad-hoc app from a package path."""
        return cls(path=Path(path))

    @property
    def has_explicit_path(self) -> bool:
        return self.path is not None


class HostRecord(BaseModel):
    """Hostnames recorded for one app."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(description="app_hosts record identifier")
    host_names: list[str] = Field(default_factory=list, alias="hostnames")
