# app/services/events.py
"""
Domain events handed from the write services to the notification fan-out.

Each event is an immutable snapshot taken inside the triggering transaction,
so delivery never needs the originating session or ORM objects.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple


@dataclass(frozen=True)
class Actor:
    id: str
    name: Optional[str]
    role: str


@dataclass(frozen=True)
class CustomerCreated:
    customer_id: str
    company_name: str
    actor: Actor


@dataclass(frozen=True)
class JobCreated:
    job_id: str
    job_number: str
    job_name: str
    project_manager_id: Optional[str]
    actor: Actor


@dataclass(frozen=True)
class JobUpdated:
    job_id: str
    job_number: str
    job_name: str
    previous_pm_id: Optional[str]
    new_pm_id: Optional[str]  # PM id present in the request, None when absent or cleared
    changes: Tuple[str, ...]  # tracked field labels, without "project manager"
    actor: Actor

    @property
    def pm_newly_assigned(self) -> bool:
        return self.previous_pm_id is None and self.new_pm_id is not None

    @property
    def pm_changed(self) -> bool:
        return (
            self.previous_pm_id is not None
            and self.new_pm_id is not None
            and self.previous_pm_id != self.new_pm_id
        )


@dataclass(frozen=True)
class JobDeleted:
    job_id: str
    job_number: str
    job_name: str
    project_manager_id: Optional[str]
    actor: Actor


@dataclass(frozen=True)
class EstimateSubmitted:
    estimate_id: str
    job_id: str
    job_number: str
    job_name: str
    quoted_price: Decimal
    is_new: bool
    actor: Actor


@dataclass(frozen=True)
class EstimateAssigned:
    estimate_id: str
    job_id: str
    job_number: str
    job_name: str
    quoted_price: Decimal
    assigned_pm_id: str
    actor: Actor
