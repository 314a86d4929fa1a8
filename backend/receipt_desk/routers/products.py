from fastapi import APIRouter, HTTPException

from ..models import Notification, Product, ProductCreate, ProductUpdate
from ..services import mutations, queries
from ..services.mutations import MutationOutcome

router = APIRouter(prefix="/products", tags=["Products"])


def _check(outcome: MutationOutcome) -> MutationOutcome:
    if not outcome.ok:
        raise HTTPException(status_code=500, detail=outcome.notification.description)
    return outcome


@router.get("", response_model=list[Product])
async def list_products() -> list[Product]:
    """List all products ordered by name."""
    try:
        return await queries.get_products()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch products: {str(e)}")


@router.post("", response_model=Product, status_code=201)
async def create_product(product: ProductCreate) -> Product:
    return _check(await mutations.create_product(product)).value


@router.patch("/{product_id}", response_model=Notification)
async def update_product(product_id: str, product: ProductUpdate) -> Notification:
    return _check(await mutations.update_product(product_id, product)).notification


@router.delete("/{product_id}", response_model=Notification)
async def delete_product(product_id: str) -> Notification:
    return _check(await mutations.delete_product(product_id)).notification
