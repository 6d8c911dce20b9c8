"""
Statement endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Response

from .deps import get_banking_system
from .schemas import statement_view
from ..banking import BankingSystem


router = APIRouter()


@router.get("/{account_number}/statement")
async def get_statement(
    account_number: str,
    filter: Optional[str] = "all",
    system: BankingSystem = Depends(get_banking_system)
):
    """Summary plus the filtered transaction list, newest first"""
    return statement_view(system.statement(account_number, filter))


@router.get("/{account_number}/statement/export")
async def export_statement(
    account_number: str,
    filter: Optional[str] = "all",
    format: Optional[str] = "csv",
    system: BankingSystem = Depends(get_banking_system)
):
    """Download the filtered statement as a file"""
    exported = system.export_statement(account_number, filter, format)
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'}
    )
