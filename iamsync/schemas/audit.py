"""Audit read schemas: emitted records, reported failures, ledger entries."""

from datetime import datetime

from pydantic import BaseModel, Field

from iamsync.domain.entities import AuditRecord, CorrelationFailure, LedgerEntry

SECRET_MASK = "********"


class AuditRecordResponse(BaseModel):
    """An emitted audit record. The creation-time secret is masked."""

    principal_name: str
    contact_email: str
    secret_value_at_creation: str = Field(default=SECRET_MASK)
    secret_version: str
    event_id: str
    emitted_at: datetime

    @classmethod
    def from_record(cls, record: AuditRecord) -> "AuditRecordResponse":
        return cls(
            principal_name=record.principal_name,
            contact_email=record.contact_email,
            secret_version=record.secret_version,
            event_id=record.event_id,
            emitted_at=record.emitted_at,
        )


class AuditRecordListResponse(BaseModel):
    items: list[AuditRecordResponse]
    total: int


class CorrelationFailureResponse(BaseModel):
    principal_name: str
    event_id: str
    error_code: str
    message: str
    attempts: int
    reported_at: datetime

    @classmethod
    def from_failure(cls, failure: CorrelationFailure) -> "CorrelationFailureResponse":
        return cls(
            principal_name=failure.principal_name,
            event_id=failure.event_id,
            error_code=failure.error_code,
            message=failure.message,
            attempts=failure.attempts,
            reported_at=failure.reported_at,
        )


class CorrelationFailureListResponse(BaseModel):
    items: list[CorrelationFailureResponse]
    total: int


class LedgerEntryResponse(BaseModel):
    """Dedupe ledger entry for one principal."""

    principal_name: str
    state: str
    event_id: str
    attempts: int
    has_record: bool
    sink_rejected: bool
    error: str | None = None
    updated_at: datetime

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> "LedgerEntryResponse":
        return cls(
            principal_name=entry.principal_name,
            state=entry.state.value,
            event_id=entry.event_id,
            attempts=entry.attempts,
            has_record=entry.record is not None,
            sink_rejected=entry.sink_rejected,
            error=entry.error,
            updated_at=entry.updated_at,
        )
