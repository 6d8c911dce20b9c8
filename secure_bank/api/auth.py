"""
Authentication endpoints
"""

from fastapi import APIRouter, Depends

from .deps import get_banking_system
from .schemas import LoginRequest, account_view
from ..banking import BankingSystem


router = APIRouter()


@router.post("/login")
async def login(
    request: LoginRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Check credentials and return the account"""
    account = system.login(request.account_number, request.password)
    return {
        "message": "Login successful",
        "account": account_view(account)
    }
