from fastapi import APIRouter, HTTPException

from ..models import Kpis
from ..services import queries
from ..services.dashboard import compute_kpis

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/kpis", response_model=Kpis)
async def get_kpis() -> Kpis:
    """
    Key figures over all receipts.

    Amounts are in MAD; percentages are 0-100.
    """
    try:
        receipts = await queries.get_receipts()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch receipts: {str(e)}")
    return compute_kpis(receipts)
