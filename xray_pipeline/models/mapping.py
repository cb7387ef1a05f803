"""
Attribution and geolocation models.

Field aliases follow the wire format of the external services.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..core.exceptions import ErrorKind


class MappingRequest(BaseModel):
    """Request body for the attribution service."""

    model_config = ConfigDict(populate_by_name=True)

    host_names: list[str] = Field(alias="hostNames")


class CompanyMapping(BaseModel):
    """A hostname attributed to the company that operates it."""

    model_config = ConfigDict(populate_by_name=True)

    host_name: str = Field(alias="hostName")
    host_id: int = Field(default=0, alias="hostID")
    company_name: str = Field(default="", alias="companyName")
    company_id: int = Field(default=0, alias="companyID")
    locale: str = Field(default="")
    categories: list[str] = Field(default_factory=list)


class GeoLocation(BaseModel):
    """Geolocation of one resolved address."""

    ip: str
    country_code: str = ""
    country_name: str = ""
    region_code: str = ""
    region_name: str = ""
    city: str = ""
    zip_code: str = ""
    time_zone: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    metro_code: int = 0


class HostFailure(BaseModel):
    """A host or record skipped during a mapping run."""

    app_host_id: int
    host_name: str | None = Field(default=None, description="None when the whole record failed")
    kind: ErrorKind
    message: str


class MappingRunReport(BaseModel):
    """Summary of a host-to-company mapping run."""

    records_seen: int = 0
    hosts_attempted: int = 0
    mappings_stored: int = 0
    failures: list[HostFailure] = Field(default_factory=list)

    @property
    def failed_hosts(self) -> list[str]:
        return [f.host_name for f in self.failures if f.host_name is not None]
