"""
Storefront — Vendor (kantin) schemas
"""
from pydantic import EmailStr, Field

from app.schemas.base import CamelModel, Notice


class OperatingHours(CamelModel):
    day: str
    open: str = ""
    close: str = ""
    is_closed: bool = False


class Kantin(CamelModel):
    """Full vendor account, credentials included (stored in plaintext)."""

    id: str
    name: str = ""
    description: str = ""
    owner_id: str = ""
    email: str = ""
    password: str = ""
    spreadsheet_api_url: str = ""
    spreadsheet_url: str = ""
    whatsapp: str = ""
    cover_image: str = ""
    qris_image: str = ""
    is_open: bool = True
    operating_hours: list[OperatingHours] = Field(default_factory=list)
    created_at: str = ""


class KantinPublic(CamelModel):
    """What shoppers get to see."""

    id: str
    name: str = ""
    description: str = ""
    whatsapp: str = ""
    cover_image: str = ""
    qris_image: str = ""
    is_open: bool = True
    operating_hours: list[OperatingHours] = Field(default_factory=list)
    created_at: str = ""


class KantinForm(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    spreadsheet_api_url: str = ""
    spreadsheet_url: str = ""
    whatsapp: str = ""
    cover_image: str = ""
    qris_image: str = ""
    is_open: bool = True
    operating_hours: list[OperatingHours] = Field(default_factory=list)


class KantinProfileUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    whatsapp: str | None = None
    cover_image: str | None = None
    qris_image: str | None = None
    operating_hours: list[OperatingHours] | None = None


class KantinStatusRequest(CamelModel):
    is_open: bool


class KantinListResponse(CamelModel):
    items: list[Kantin]
    source: str
    pending_sync: list[str] = Field(default_factory=list)
    notifications: list[Notice] = Field(default_factory=list)


class KantinPublicListResponse(CamelModel):
    items: list[KantinPublic]
    source: str


class KantinWriteResponse(CamelModel):
    kantin: Kantin | None
    synced: bool
    pending_sync: list[str] = Field(default_factory=list)
    notifications: list[Notice] = Field(default_factory=list)
