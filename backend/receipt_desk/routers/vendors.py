from fastapi import APIRouter, HTTPException

from ..models import Notification, Vendor, VendorCreate, VendorUpdate
from ..services import mutations, queries
from ..services.mutations import MutationOutcome

router = APIRouter(prefix="/vendors", tags=["Vendors"])


def _check(outcome: MutationOutcome) -> MutationOutcome:
    if not outcome.ok:
        raise HTTPException(status_code=500, detail=outcome.notification.description)
    return outcome


@router.get("", response_model=list[Vendor])
async def list_vendors() -> list[Vendor]:
    """List all vendors ordered by name."""
    try:
        return await queries.get_vendors()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch vendors: {str(e)}")


@router.post("", response_model=Vendor, status_code=201)
async def create_vendor(vendor: VendorCreate) -> Vendor:
    """Create a vendor. The name is required; blank aliases are dropped."""
    return _check(await mutations.create_vendor(vendor)).value


@router.patch("/{vendor_id}", response_model=Notification)
async def update_vendor(vendor_id: str, vendor: VendorUpdate) -> Notification:
    return _check(await mutations.update_vendor(vendor_id, vendor)).notification


@router.delete("/{vendor_id}", response_model=Notification)
async def delete_vendor(vendor_id: str) -> Notification:
    return _check(await mutations.delete_vendor(vendor_id)).notification
