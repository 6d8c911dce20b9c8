"""
Pydantic schemas for API requests and responses
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from ..accounts import Account, RegistrationProfile
from ..currency import Money
from ..statements import AccountStatement, statement_rows


class MoneyModel(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    currency: str = Field(..., description="Currency code (INR, USD, etc.)")

    @classmethod
    def from_money(cls, money: Money) -> 'MoneyModel':
        return cls(amount=money.to_plain(), currency=money.currency.code)


# Account schemas
class RegisterRequest(BaseModel):
    full_name: str
    email: str
    phone: str
    address: str
    password: str
    confirm_password: str
    initial_deposit: str = Field(..., description="Decimal amount as string, at least 100")

    def to_profile(self) -> RegistrationProfile:
        return RegistrationProfile(
            full_name=self.full_name,
            email=self.email,
            phone=self.phone,
            address=self.address,
            password=self.password,
            confirm_password=self.confirm_password,
        )


class LoginRequest(BaseModel):
    account_number: str
    password: str


# Transaction schemas
class AmountRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    description: Optional[str] = None


class TransferRequest(BaseModel):
    to_account: str = Field(..., description="Recipient account number")
    amount: str = Field(..., description="Decimal amount as string")
    description: Optional[str] = None


def account_view(account: Account) -> Dict[str, Any]:
    """Public view of an account; never includes credentials"""
    return {
        "account_number": account.account_number,
        "full_name": account.full_name,
        "email": account.email,
        "phone": account.phone,
        "address": account.address,
        "balance": MoneyModel.from_money(account.balance).model_dump(),
        "transactions": statement_rows(account.transactions),
        "created_at": account.created_at.isoformat(),
    }


def statement_view(statement: AccountStatement) -> Dict[str, Any]:
    rows: List[Dict[str, Any]] = statement_rows(statement.transactions)
    return {
        "account_number": statement.account_number,
        "full_name": statement.full_name,
        "filter": statement.statement_filter.value,
        "summary": statement.summary.to_dict(),
        "count": len(rows),
        "transactions": rows,
    }
