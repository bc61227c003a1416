"""
Dataset Upload Endpoints

Transaction reports and member exports are posted as raw CSV bodies.
"""

from typing import List

from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
import polars as pl
import structlog

from retention_analytics.exceptions import SchemaError
from retention_analytics.ingestion.loader import load_member_import, load_transactions
from retention_analytics.serving.api.store import DatasetStore
from retention_analytics.transformation.cleaners import RecordNormalizer

router = APIRouter()
logger = structlog.get_logger(__name__)


class TransactionsLoaded(BaseModel):
    """Result of a transaction report upload"""
    rows: int
    completed_rows: int
    members: int
    years: List[str]


class MembersLoaded(BaseModel):
    """Result of a member export upload"""
    members: int
    with_visit_count: int
    with_age: int


async def _read_body(request: Request) -> bytes:
    body = await request.body()
    if not body:
        raise HTTPException(status_code=400, detail="Empty upload")
    return body


def _replace_transactions(store: DatasetStore, body: bytes) -> TransactionsLoaded:
    """Parse, normalize and prepare an uploaded report"""
    try:
        raw = load_transactions(body)
    except pl.exceptions.PolarsError as e:
        raise HTTPException(status_code=400, detail=f"Unreadable CSV: {e}")

    try:
        transactions = RecordNormalizer(store.config).normalize(raw)
    except SchemaError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if transactions.is_empty():
        raise HTTPException(status_code=422, detail="No completed transactions in report")

    dataset = store.set_transactions(transactions)
    logger.info("Transaction report uploaded", rows=len(raw), completed_rows=len(transactions))

    return TransactionsLoaded(
        rows=len(raw),
        completed_rows=len(dataset.transactions),
        members=len(dataset.profiles),
        years=dataset.available_years,
    )


@router.post("/transactions", response_model=TransactionsLoaded)
async def upload_transactions(request: Request) -> TransactionsLoaded:
    """Replace the current transaction report"""
    body = await _read_body(request)
    return await run_in_threadpool(_replace_transactions, request.app.state.datasets, body)


@router.post("/members", response_model=MembersLoaded)
async def upload_members(request: Request) -> MembersLoaded:
    """Replace the external member import"""
    body = await _read_body(request)
    try:
        imports = load_member_import(body)
    except pl.exceptions.PolarsError as e:
        raise HTTPException(status_code=400, detail=f"Unreadable CSV: {e}")

    request.app.state.datasets.set_member_import(imports)
    return MembersLoaded(
        members=len(imports),
        with_visit_count=sum(1 for m in imports.values() if m.historical_visit_count > 0),
        with_age=sum(1 for m in imports.values() if m.age_years is not None),
    )
