"""Item retrieval routes."""

from fastapi import APIRouter, Depends, Path, status

from core.container import container
from models.item import MAX_ITEM_ID, ItemCreate, ItemLookup, ItemRead
from services.item_service import ItemService

router = APIRouter(prefix="/v1", tags=["items"])


@router.get("/items/{item_id}", response_model=ItemLookup)
async def read_item(
    item_id: int = Path(gt=0, le=MAX_ITEM_ID),
    item_service: ItemService = Depends(lambda: container.item_service())
):
    """Retrieve an item by id, reporting which tier answered."""
    return await item_service.read_item(item_id)


@router.post("/items", response_model=ItemRead, status_code=status.HTTP_201_CREATED)
async def create_item(
    request: ItemCreate,
    item_service: ItemService = Depends(lambda: container.item_service())
):
    """Create a new item."""
    return await item_service.create_item(request.name, request.value)
