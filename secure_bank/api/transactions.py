"""
Deposit, withdrawal and transfer endpoints
"""

from fastapi import APIRouter, Depends

from .deps import get_banking_system
from .schemas import AmountRequest, MoneyModel, TransferRequest, account_view
from ..banking import BankingSystem


router = APIRouter()


@router.post("/{account_number}/deposit")
async def deposit(
    account_number: str,
    request: AmountRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Make a deposit"""
    account = system.deposit(account_number, request.amount, request.description)
    return {
        "transaction_id": account.transactions[0].id,
        "message": "Deposit processed successfully",
        "account": account_view(account)
    }


@router.post("/{account_number}/withdraw")
async def withdraw(
    account_number: str,
    request: AmountRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Make a withdrawal"""
    account = system.withdraw(account_number, request.amount, request.description)
    return {
        "transaction_id": account.transactions[0].id,
        "message": "Withdrawal processed successfully",
        "account": account_view(account)
    }


@router.post("/{account_number}/transfer")
async def transfer(
    account_number: str,
    request: TransferRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Transfer funds to another account"""
    result = system.transfer(
        sender_number=account_number,
        recipient_number=request.to_account,
        amount=request.amount,
        description=request.description
    )
    return {
        "transfer_id": result.transfer.id,
        "amount": MoneyModel.from_money(result.transfer.amount).model_dump(),
        "sender_transaction": result.sender_transaction.to_dict(),
        "recipient_transaction": result.recipient_transaction.to_dict(),
        "balance": MoneyModel.from_money(result.updated_sender.balance).model_dump(),
        "message": "Transfer processed successfully"
    }
