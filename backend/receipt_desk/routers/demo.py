from fastapi import APIRouter, HTTPException

from ..services import seed

router = APIRouter(prefix="/demo", tags=["Demo data"])


@router.post("/seed")
async def seed_demo() -> dict:
    """Insert demo vendors, products, receipts and lines."""
    try:
        return await seed.seed_demo_data()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to seed demo data: {str(e)}")


@router.post("/reset")
async def reset_demo() -> dict:
    """Delete all data, then seed the demo data again."""
    try:
        return await seed.reset_demo_data()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to reset demo data: {str(e)}")


@router.delete("")
async def clear_data() -> dict:
    """Delete every row from every table."""
    try:
        await seed.clear_all_data()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to clear data: {str(e)}")
    return {"status": "cleared"}
