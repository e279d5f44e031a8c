"""Swap request schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...models_calendar import SwapRequest
from ...utils.dates import to_naive_utc


def _clean_note(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class SwapRequestCreate(BaseModel):
    originalDate: datetime
    proposedDate: Optional[datetime] = None
    requestType: Literal["swap", "one-way"] = "swap"
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("originalDate", "proposedDate")
    @classmethod
    def normalize_dates(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def require_proposed_date_for_swap(self):
        if self.requestType == "swap" and self.proposedDate is None:
            raise ValueError("proposedDate is required for swap requests")
        if self.requestType == "one-way":
            self.proposedDate = None
        return self


class SwapStatusUpdate(BaseModel):
    status: Literal["approved", "rejected", "cancelled"]
    responseNote: Optional[str] = Field(None, max_length=500)

    @field_validator("responseNote")
    @classmethod
    def clean_note(cls, v):
        return _clean_note(v)


class SwapCounter(BaseModel):
    proposedDate: datetime
    counterNote: Optional[str] = Field(None, max_length=500)

    @field_validator("proposedDate")
    @classmethod
    def normalize_date(cls, v):
        return to_naive_utc(v)

    @field_validator("counterNote")
    @classmethod
    def clean_note(cls, v):
        return _clean_note(v)


class SwapCounterRejection(BaseModel):
    counterResponseNote: Optional[str] = Field(None, max_length=500)

    @field_validator("counterResponseNote")
    @classmethod
    def clean_note(cls, v):
        return _clean_note(v)


class SwapRequestResponse(BaseModel):
    id: str
    familyId: str
    requesterId: str
    requesterName: Optional[str] = None
    recipientId: str
    recipientName: Optional[str] = None
    originalDate: datetime
    proposedDate: Optional[datetime] = None
    requestType: str
    reason: Optional[str] = None
    status: str
    previousProposedDate: Optional[datetime] = None
    counterNote: Optional[str] = None
    counteredById: Optional[str] = None
    counteredAt: Optional[datetime] = None
    requesterConfirmedAt: Optional[datetime] = None
    counterResponseNote: Optional[str] = None
    counterRespondedAt: Optional[datetime] = None
    responseNote: Optional[str] = None
    respondedAt: Optional[datetime] = None
    version: int
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, swap: SwapRequest) -> "SwapRequestResponse":
        return cls(
            id=swap.id,
            familyId=swap.family_id,
            requesterId=swap.requester_id,
            requesterName=swap.requester_name,
            recipientId=swap.recipient_id,
            recipientName=swap.recipient_name,
            originalDate=swap.original_date,
            proposedDate=swap.proposed_date,
            requestType=swap.request_type,
            reason=swap.reason,
            status=swap.status,
            previousProposedDate=swap.previous_proposed_date,
            counterNote=swap.counter_note,
            counteredById=swap.countered_by_id,
            counteredAt=swap.countered_at,
            requesterConfirmedAt=swap.requester_confirmed_at,
            counterResponseNote=swap.counter_response_note,
            counterRespondedAt=swap.counter_responded_at,
            responseNote=swap.response_note,
            respondedAt=swap.responded_at,
            version=swap.version,
            createdAt=swap.created_at,
            updatedAt=swap.updated_at,
        )
