# app/schemas/customer.py
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from app.models.customer import Customer
from app.schemas.base import BaseDTO, RequestModel, normalize_email


class AddressIn(RequestModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


class CustomerCreateRequest(RequestModel):
    company_name: str = Field(min_length=1, max_length=200)
    name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[AddressIn] = None
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value.strip() == "":
            return None
        return normalize_email(value)


class CustomerUpdateRequest(CustomerCreateRequest):
    company_name: Optional[str] = Field(default=None, min_length=1, max_length=200)


class CustomerRefDTO(BaseDTO):
    id: str
    company_name: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_orm_model(cls, customer: Optional[Customer]) -> Optional["CustomerRefDTO"]:
        if customer is None:
            return None
        return cls(
            id=customer.id,
            company_name=customer.company_name,
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
        )


class CustomerDTO(BaseDTO):
    id: str
    company_name: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: dict
    notes: Optional[str] = None
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_orm_model(cls, customer: Customer) -> "CustomerDTO":
        return cls(
            id=customer.id,
            company_name=customer.company_name,
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
            address=customer.address,
            notes=customer.notes,
            deleted_at=customer.deleted_at,
            created_at=customer.created_at,
        )
