"""Local development implementation of the remote transactions API.

Run with ``uvicorn server:app --reload`` and point ``API_BASE_URL`` at it.
"""

from contextlib import asynccontextmanager
from datetime import date
from typing import List

from fastapi import Depends, FastAPI, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from database import TransactionRecord, get_db, init_db
from logging_setup import get_logger

logger = get_logger("finance_tracker.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Finance Tracker API", version="0.1.0", lifespan=lifespan)


class TransactionIn(BaseModel):
    id: str = Field(..., min_length=1)
    amount: float
    category: str = "Other"
    date: date
    email: str = Field(..., min_length=3)


class TransactionOut(BaseModel):
    id: str
    amount: float
    category: str
    date: date


class DeleteRequest(BaseModel):
    id: str
    email: str


class DeleteResponse(BaseModel):
    deleted: str


def _to_out(row: TransactionRecord) -> TransactionOut:
    return TransactionOut(id=row.id, amount=row.amount, category=row.category or "Other", date=row.date)


def _get_owned(db: Session, tx_id: str, email: str) -> TransactionRecord:
    row = (
        db.query(TransactionRecord)
        .filter(TransactionRecord.id == tx_id, TransactionRecord.email == email)
        .first()
    )
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Transaction {tx_id} not found")
    return row


@app.get("/transactions", response_model=List[TransactionOut])
def list_transactions(email: str, db: Session = Depends(get_db)):
    rows = (
        db.query(TransactionRecord)
        .filter(TransactionRecord.email == email)
        .order_by(TransactionRecord.date.desc())
        .all()
    )
    return [_to_out(r) for r in rows]


@app.post("/transactions", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
def create_transaction(req: TransactionIn, db: Session = Depends(get_db)):
    exists = (
        db.query(TransactionRecord)
        .filter(TransactionRecord.id == req.id, TransactionRecord.email == req.email)
        .first()
    )
    if exists:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Transaction {req.id} already exists")

    row = TransactionRecord(id=req.id, email=req.email, amount=req.amount, category=req.category, date=req.date)
    db.add(row)
    db.commit()
    logger.info("Created transaction %s for %s", req.id, req.email)
    return _to_out(row)


@app.patch("/transactions", response_model=TransactionOut)
def update_transaction(req: TransactionIn, db: Session = Depends(get_db)):
    row = _get_owned(db, req.id, req.email)
    row.amount = req.amount
    row.category = req.category
    row.date = req.date
    db.commit()
    logger.info("Updated transaction %s for %s", req.id, req.email)
    return _to_out(row)


@app.delete("/transactions", response_model=DeleteResponse)
def delete_transaction(req: DeleteRequest, db: Session = Depends(get_db)):
    row = _get_owned(db, req.id, req.email)
    db.delete(row)
    db.commit()
    logger.info("Deleted transaction %s for %s", req.id, req.email)
    return DeleteResponse(deleted=req.id)
