"""REST API routes for inspecting background recording transfers."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..application.transfer_registry import TransferRecord, TransferRegistry


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


class TransferStatusResponse(BaseModel):
    """Snapshot of one tracked transfer."""

    transfer_id: str
    event: str
    state: str
    object_key: str | None = None
    upload_id: str | None = None
    parts: int = 0
    bytes_transferred: int = 0
    location: str | None = None
    error: str | None = None
    cancelled: bool = False
    started_at: str
    finished_at: str | None = None

    @classmethod
    def from_domain(cls, record: TransferRecord) -> "TransferStatusResponse":
        return cls(
            transfer_id=record.transfer_id,
            event=record.event,
            state=record.current_state.value,
            object_key=record.object_key,
            upload_id=record.upload_id,
            parts=record.parts,
            bytes_transferred=record.bytes_transferred,
            location=record.result.location if record.result else None,
            error=record.error,
            cancelled=record.cancelled,
            started_at=_isoformat(record.started_at),
            finished_at=_isoformat(record.finished_at),
        )


class TransferListResponse(BaseModel):
    items: list[TransferStatusResponse]
    running: int


def create_status_router(registry: TransferRegistry) -> APIRouter:
    router = APIRouter(prefix="/api/v1/transfers", tags=["transfers"])

    @router.get("", response_model=TransferListResponse)
    async def list_transfers_endpoint():
        records = registry.records()
        return TransferListResponse(
            items=[TransferStatusResponse.from_domain(record) for record in records],
            running=sum(1 for record in records if not record.done),
        )

    @router.get("/{transfer_id}", response_model=TransferStatusResponse)
    async def get_transfer_endpoint(transfer_id: str):
        record = registry.get(transfer_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Transfer not found")
        return TransferStatusResponse.from_domain(record)

    return router
