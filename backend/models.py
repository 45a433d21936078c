from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Device(BaseModel):
    """One row of the ARP table: IPv4 literal and colon-separated MAC."""

    model_config = ConfigDict(frozen=True)

    ip: str
    mac: str


class PiholeStats(BaseModel):
    """Summary counters reported by the Pi-hole FTL API.

    `domains_being_blocked` is the key Pi-hole uses on the wire; the model
    also accepts `domains_blocked` and dumps with the Pi-hole key when
    `by_alias=True` (FastAPI does this for response models).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    domains_blocked: int = Field(
        ge=0,
        strict=True,
        validation_alias=AliasChoices("domains_being_blocked", "domains_blocked"),
        serialization_alias="domains_being_blocked",
    )
    dns_queries_today: int = Field(ge=0, strict=True)
    ads_blocked_today: int = Field(ge=0, strict=True)
    ads_percentage_today: float = Field(strict=True, allow_inf_nan=False)
    status: str = Field(strict=True)


class EndpointCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    url: str


class SessionCredential(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str


class PiholeAuthRequest(BaseModel):
    password: str


class PiholeSession(BaseModel):
    valid: bool = False
    sid: Optional[str] = None
    csrf: Optional[str] = None
    validity: Optional[int] = None


class PiholeAuthResponse(BaseModel):
    session: PiholeSession
