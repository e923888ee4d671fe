import uuid
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from .common import CNPJ_RE, CPF_RE, ZIP_RE, check_choice, check_email, check_length, check_phone

CLIENT_STATUSES = ("LEAD", "PROSPECT", "CLIENT", "INACTIVE")
CLIENT_KINDS = ("PESSOA_FISICA", "PESSOA_JURIDICA")
ADDRESS_KINDS = ("RESIDENTIAL", "COMMERCIAL", "MAILING", "DELIVERY", "BILLING")


def _document(v: Optional[str]):
    if v is None or v == "":
        return None
    v = v.strip()
    if not (CPF_RE.match(v) or CNPJ_RE.match(v)):
        raise ValueError("document must be a CPF (000.000.000-00) or CNPJ (00.000.000/0000-00)")
    return v


class AddressBase(BaseModel):
    street: str
    number: Optional[str] = None
    complement: Optional[str] = None
    district: Optional[str] = None
    city: str
    state: str
    zip_code: str
    kind: str = "COMMERCIAL"
    is_primary: bool = False

    @field_validator("street")
    @classmethod
    def _street(cls, v: str):
        return check_length(v, "street", 1, 200)

    @field_validator("city")
    @classmethod
    def _city(cls, v: str):
        return check_length(v, "city", 1, 100)

    @field_validator("state")
    @classmethod
    def _state(cls, v: str):
        v = (v or "").strip().upper()
        if len(v) != 2:
            raise ValueError("state must be 2 characters")
        return v

    @field_validator("zip_code")
    @classmethod
    def _zip(cls, v: str):
        v = (v or "").strip()
        if not ZIP_RE.match(v):
            raise ValueError("Invalid zip code")
        return v

    @field_validator("kind")
    @classmethod
    def _kind(cls, v: str):
        return check_choice(v, "kind", ADDRESS_KINDS)


class AddressCreate(AddressBase):
    pass


class Address(AddressBase):
    id: uuid.UUID
    model_config = ConfigDict(from_attributes=True)


class ClientBase(BaseModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None
    kind: str = "PESSOA_FISICA"
    status: str = "LEAD"
    potential_value: Optional[float] = None
    notes: Optional[str] = None
    group_id: Optional[uuid.UUID] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str):
        return check_length(v, "name", 2, 100)

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]):
        return check_email(v) if v else None

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: Optional[str]):
        return check_phone(v)

    @field_validator("document")
    @classmethod
    def _doc(cls, v: Optional[str]):
        return _document(v)

    @field_validator("kind")
    @classmethod
    def _kind(cls, v: str):
        return check_choice(v, "kind", CLIENT_KINDS)

    @field_validator("status")
    @classmethod
    def _status(cls, v: str):
        return check_choice(v, "status", CLIENT_STATUSES)

    @field_validator("notes")
    @classmethod
    def _notes(cls, v: Optional[str]):
        if v is not None and len(v) > 1000:
            raise ValueError("notes must be at most 1000 characters")
        return v

    @field_validator("potential_value")
    @classmethod
    def _value(cls, v: Optional[float]):
        if v is not None and v < 0:
            raise ValueError("potential_value must be >= 0")
        return v


class ClientCreate(ClientBase):
    addresses: List[AddressCreate] = []


class ClientUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None
    kind: Optional[str] = None
    status: Optional[str] = None
    potential_value: Optional[float] = None
    notes: Optional[str] = None
    group_id: Optional[uuid.UUID] = None
    addresses: Optional[List[AddressCreate]] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: Optional[str]):
        return check_length(v, "name", 2, 100)

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]):
        return check_email(v) if v else None

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: Optional[str]):
        return check_phone(v)

    @field_validator("document")
    @classmethod
    def _doc(cls, v: Optional[str]):
        return _document(v)

    @field_validator("kind")
    @classmethod
    def _kind(cls, v: Optional[str]):
        return check_choice(v, "kind", CLIENT_KINDS)

    @field_validator("status")
    @classmethod
    def _status(cls, v: Optional[str]):
        return check_choice(v, "status", CLIENT_STATUSES)

    @field_validator("notes")
    @classmethod
    def _notes(cls, v: Optional[str]):
        if v is not None and len(v) > 1000:
            raise ValueError("notes must be at most 1000 characters")
        return v


class Client(ClientBase):
    id: uuid.UUID
    addresses: List[Address] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class PaginatedClients(BaseModel):
    items: List[Client]
    total_items: int
    total_pages: int
    page: int
    limit: int
