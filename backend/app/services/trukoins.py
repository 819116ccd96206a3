"""
TrueKoin wallet and ledger.

Each credit or debit writes a ledger row and moves the balance with a single
UPDATE, so concurrent calls cannot lose an increment or overdraw.
"""
import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.database import utcnow
from app.models import TrukoinWallet, TrukoinTransaction

logger = logging.getLogger(__name__)


def get_or_create_wallet(db: Session, user_id: int) -> TrukoinWallet:
    """Get the user's wallet, creating an empty one on first use."""
    wallet = db.query(TrukoinWallet).filter(TrukoinWallet.user_id == user_id).first()
    if wallet:
        return wallet

    try:
        with db.begin_nested():
            wallet = TrukoinWallet(user_id=user_id, balance=0, lifetime_earned=0)
            db.add(wallet)
    except IntegrityError:
        # Created concurrently
        wallet = db.query(TrukoinWallet).filter(TrukoinWallet.user_id == user_id).one()
    return wallet


def earn_trukoins(
    db: Session,
    user_id: int,
    amount: int,
    transaction_type: str,
    description: str,
    reference_id: Optional[str] = None,
) -> TrukoinTransaction:
    """
    Credit a wallet.

    Does not commit; the caller owns the transaction so the credit lands
    together with whatever earned it.
    """
    if amount <= 0:
        raise HTTPException(status_code=400, detail="Amount must be positive")

    get_or_create_wallet(db, user_id)

    db.execute(
        update(TrukoinWallet)
        .where(TrukoinWallet.user_id == user_id)
        .values(
            balance=TrukoinWallet.balance + amount,
            lifetime_earned=TrukoinWallet.lifetime_earned + amount,
            updated_at=utcnow(),
        )
    )

    transaction = TrukoinTransaction(
        user_id=user_id,
        amount=amount,
        transaction_type=transaction_type,
        description=description,
        reference_id=reference_id,
    )
    db.add(transaction)
    db.flush()
    logger.info(f"User {user_id} earned {amount} TrueKoins ({transaction_type})")
    return transaction


def spend_trukoins(
    db: Session,
    user_id: int,
    amount: int,
    description: str,
    reference_id: Optional[str] = None,
) -> TrukoinTransaction:
    """Debit a wallet if the balance covers it. Does not commit."""
    if amount <= 0:
        raise HTTPException(status_code=400, detail="Amount must be positive")

    get_or_create_wallet(db, user_id)

    result = db.execute(
        update(TrukoinWallet)
        .where(TrukoinWallet.user_id == user_id, TrukoinWallet.balance >= amount)
        .values(balance=TrukoinWallet.balance - amount, updated_at=utcnow())
    )
    if result.rowcount != 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Saldo insuficiente: necesitas {amount} TrueKoins"
        )

    transaction = TrukoinTransaction(
        user_id=user_id,
        amount=-amount,
        transaction_type="spend",
        description=description,
        reference_id=reference_id,
    )
    db.add(transaction)
    db.flush()
    return transaction


def get_wallet_summary(db: Session, user_id: int, limit: int = 50) -> dict:
    wallet = get_or_create_wallet(db, user_id)
    db.commit()
    db.refresh(wallet)

    transactions = (
        db.query(TrukoinTransaction)
        .filter(TrukoinTransaction.user_id == user_id)
        .order_by(TrukoinTransaction.id.desc())
        .limit(limit)
        .all()
    )
    return {"wallet": wallet, "transactions": transactions}
