"""
Account registration and lookup endpoints
"""

from fastapi import APIRouter, Depends, status

from .deps import get_banking_system
from .schemas import RegisterRequest, account_view
from ..banking import BankingSystem


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_account(
    request: RegisterRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Register a new account"""
    account_number = system.register(request.to_profile(), request.initial_deposit)
    return {
        "account_number": account_number,
        "message": "Account created successfully"
    }


@router.get("/{account_number}")
async def get_account(
    account_number: str,
    system: BankingSystem = Depends(get_banking_system)
):
    """Get account details and transaction history"""
    return account_view(system.get_account(account_number))


@router.get("/{account_number}/recipients")
async def list_recipients(
    account_number: str,
    system: BankingSystem = Depends(get_banking_system)
):
    """Other accounts that can receive a transfer"""
    return {
        "recipients": [
            {"account_number": account.account_number, "full_name": account.full_name}
            for account in system.recipients(account_number)
        ]
    }
