"""Clinical session models.

Sessions and consultations belong to the scheduling side of the clinic and are
read-only here: billing only needs a session's status, patient and priced
consultations.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from clinicbill.settings import settings


class SessionStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class ConsultationCharge(BaseModel):
    consultation_id: UUID
    name: str
    price: Decimal | None = None
    currency: str = Field(default_factory=lambda: settings.currency)


class ClinicalSession(BaseModel):
    id: UUID
    patient_id: UUID
    status: SessionStatus
    consultations: list[ConsultationCharge] = []

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    @property
    def consultation_names(self) -> list[str]:
        return [c.name for c in self.consultations]
