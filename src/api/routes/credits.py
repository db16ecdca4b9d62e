"""Credit API Routes

FastAPI routes for credit transfers, debits, refunds and balance queries.
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.schemas.credit_request import (
    DebitRequestSchema,
    RefundRequestSchema,
    TransferRequestSchema,
)
from src.app.use_cases.credits import (
    BalanceResponseDTO,
    CreditTransactionResponseDTO,
    DebitCommandDTO,
    DebitCredits,
    GetBalance,
    ListTransactions,
    ListTransactionsResponseDTO,
    RefundCommandDTO,
    RefundResultDTO,
    SweepExpiredCredits,
    SweepResultDTO,
    TransferCommandDTO,
    TransferCredits,
)
from src.adapter.repositories import (
    SqlAlchemyCategoryRepository,
    SqlAlchemyCreditLedgerRepository,
    SqlAlchemyCreditTransactionRepository,
    SqlAlchemyOwnerRepository,
)
from src.adapter.services import SqlAlchemyUnitOfWork
from src.domain.credit_transaction import TransactionType
from src.depends import build_refund_credits, get_session
from src.api.error import ClientError

router = APIRouter(prefix="/credits", tags=["Credits"])

INSUFFICIENT_CREDIT_RESPONSE = {
    "description": "Insufficient credits",
    "content": {
        "application/json": {
            "example": {
                "error": {
                    "code": "INSUFFICIENT_CREDIT",
                    "message": "Insufficient credits. Required: 100, Available: 40",
                }
            }
        }
    },
}


@router.post(
    "/transfers",
    response_model=CreditTransactionResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        402: INSUFFICIENT_CREDIT_RESPONSE,
        403: {
            "description": "Transfer direction not permitted by role",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "TRANSFER_NOT_ALLOWED",
                            "message": "A user cannot transfer credits to a reseller",
                        }
                    }
                }
            },
        },
    },
)
async def transfer_credits(
    request: TransferRequestSchema,
    session: AsyncSession = Depends(get_session)
):
    """
    Transfer credits from one owner to another.

    Admins may give to anyone; resellers give to their users; users
    cannot give credits. Admin balances are never reduced. The receiving
    balance takes the requested duration policy and expiry.

    Retrying with the same `idempotency_key` returns the original transaction.
    """
    use_case = TransferCredits(
        uow=SqlAlchemyUnitOfWork(session),
        owner_repo=SqlAlchemyOwnerRepository(session),
        category_repo=SqlAlchemyCategoryRepository(session),
        ledger_repo=SqlAlchemyCreditLedgerRepository(session),
        transaction_repo=SqlAlchemyCreditTransactionRepository(session),
    )

    result = await use_case.execute(TransferCommandDTO(**request.model_dump()))

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/debits",
    response_model=CreditTransactionResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={402: INSUFFICIENT_CREDIT_RESPONSE},
)
async def debit_credits(
    request: DebitRequestSchema,
    session: AsyncSession = Depends(get_session)
):
    """Debit credits from an owner's own balance."""
    use_case = DebitCredits(
        uow=SqlAlchemyUnitOfWork(session),
        owner_repo=SqlAlchemyOwnerRepository(session),
        ledger_repo=SqlAlchemyCreditLedgerRepository(session),
        transaction_repo=SqlAlchemyCreditTransactionRepository(session),
    )

    result = await use_case.execute(DebitCommandDTO(**request.model_dump()))

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/refunds",
    response_model=RefundResultDTO,
    status_code=status.HTTP_200_OK,
)
async def refund_credits(
    request: RefundRequestSchema,
    session: AsyncSession = Depends(get_session)
):
    """
    Refund credits for failed campaign messages.

    The campaign's refund policy decides the amount; when no refund
    applies the response carries `refunded: false` and the reason.
    """
    result = await build_refund_credits(session).execute(
        RefundCommandDTO(**request.model_dump())
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/expiry-sweeps",
    response_model=SweepResultDTO,
    status_code=status.HTTP_200_OK,
)
async def sweep_expired_credits(
    limit: int = Query(default=500, ge=1, le=5000),
    session: AsyncSession = Depends(get_session)
):
    """Zero out every balance whose expiry has passed, recording an expiry transaction each."""
    use_case = SweepExpiredCredits(
        uow=SqlAlchemyUnitOfWork(session),
        ledger_repo=SqlAlchemyCreditLedgerRepository(session),
        transaction_repo=SqlAlchemyCreditTransactionRepository(session),
    )

    result = await use_case.execute(limit=limit)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/balances/{owner_id}/{category_id}",
    response_model=BalanceResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def get_balance(
    owner_id: str,
    category_id: str,
    session: AsyncSession = Depends(get_session)
):
    """Current balance of an owner in a category; expired balances read as 0."""
    use_case = GetBalance(ledger_repo=SqlAlchemyCreditLedgerRepository(session))

    result = await use_case.execute(owner_id, category_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/transactions",
    response_model=ListTransactionsResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def list_transactions(
    owner_id: str = Query(..., min_length=1),
    category_id: Optional[str] = Query(default=None),
    transaction_type: Optional[TransactionType] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(get_session)
):
    """
    Paginated transaction history for an owner, newest first.

    Includes transactions where the owner is either side.
    """
    use_case = ListTransactions(transaction_repo=SqlAlchemyCreditTransactionRepository(session))

    result = await use_case.execute(
        owner_id=owner_id,
        category_id=category_id,
        transaction_type=transaction_type,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value
