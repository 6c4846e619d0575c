"""Audit API: emitted records, reported failures, ledger entries and manual replay."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from iamsync.api.v1.dependencies import get_audit_sink, get_correlator, get_error_channel
from iamsync.application.interfaces import IAuditSink, IErrorChannel
from iamsync.application.services import EventCorrelator
from iamsync.domain.exceptions import NotFoundException
from iamsync.infrastructure.sinks import InMemoryAuditSink, InMemoryErrorChannel
from iamsync.schemas.audit import (
    AuditRecordListResponse,
    AuditRecordResponse,
    CorrelationFailureListResponse,
    CorrelationFailureResponse,
    LedgerEntryResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/records", response_model=AuditRecordListResponse)
async def list_audit_records(
    sink: Annotated[IAuditSink, Depends(get_audit_sink)],
) -> AuditRecordListResponse:
    """List emitted records (memory audit sink only; secrets masked)."""
    if not isinstance(sink, InMemoryAuditSink):
        raise HTTPException(
            status_code=404, detail="Audit records are only retained by the memory audit sink"
        )
    return AuditRecordListResponse(
        items=[AuditRecordResponse.from_record(r) for r in sink.records],
        total=len(sink.records),
    )


@router.get("/failures", response_model=CorrelationFailureListResponse)
async def list_correlation_failures(
    error_channel: Annotated[IErrorChannel, Depends(get_error_channel)],
) -> CorrelationFailureListResponse:
    """List reported correlation failures (memory error channel only)."""
    if not isinstance(error_channel, InMemoryErrorChannel):
        raise HTTPException(
            status_code=404,
            detail="Correlation failures are only retained by the memory error channel",
        )
    return CorrelationFailureListResponse(
        items=[CorrelationFailureResponse.from_failure(f) for f in error_channel.failures],
        total=len(error_channel.failures),
    )


@router.get("/correlations/{name}", response_model=LedgerEntryResponse)
async def get_correlation(
    name: str,
    correlator: Annotated[EventCorrelator, Depends(get_correlator)],
) -> LedgerEntryResponse:
    """Return the ledger entry for a principal; 404 when no delivery was seen."""
    entry = correlator.ledger_entry(name)
    if entry is None:
        raise NotFoundException("correlation", name)
    return LedgerEntryResponse.from_entry(entry)


@router.post("/correlations/{name}/replay", response_model=LedgerEntryResponse)
async def replay_correlation(
    name: str,
    correlator: Annotated[EventCorrelator, Depends(get_correlator)],
) -> LedgerEntryResponse:
    """Re-emit a kept record after a sink rejection, or re-run a failed correlation."""
    state = await correlator.replay(name)
    logger.info("Replay for %s finished in state %s", name, state.value)
    entry = correlator.ledger_entry(name)
    if entry is None:
        raise NotFoundException("correlation", name)
    return LedgerEntryResponse.from_entry(entry)
