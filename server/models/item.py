"""Item table and the schemas that travel through the cache tiers."""

from typing import Literal, Optional
from sqlmodel import SQLModel, Field, Column, Text

# Largest id a signed 64-bit INTEGER column can hold
MAX_ITEM_ID = 2 ** 63 - 1


class ItemBase(SQLModel):
    name: str = Field(max_length=255)
    value: Optional[str] = Field(default=None)


class Item(ItemBase, table=True):
    """System-of-record row. Immutable once inserted."""

    __tablename__ = "items"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255, nullable=False)
    value: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))


class ItemCreate(ItemBase):
    """Create-item input."""


class ItemRead(ItemBase):
    """Decoded item held in L1 and JSON-encoded into L2."""

    id: int


ItemSource = Literal["memory", "shared", "store"]


class ItemLookup(SQLModel):
    """Read-item result: which tier answered, and the item."""

    source: ItemSource
    item: ItemRead
