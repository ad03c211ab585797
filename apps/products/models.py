from sqlmodel import SQLModel, Field, JSON, Column
from typing import Optional, List, Dict
from pydantic import BaseModel, ConfigDict, Field as PydanticField
from sqlalchemy import String
from framework.repository.entity import AggregateRoot


class ProductProperty(BaseModel):
    """Key/value pair describing a product type; immutable."""
    model_config = ConfigDict(frozen=True)

    key: str
    value: str


class ProductType(BaseModel):
    """Owned by a single product; properties keep their order."""
    name: str
    properties: List[ProductProperty] = PydanticField(default_factory=list)


class Product(AggregateRoot):
    """Product aggregate."""
    name: str = ""
    code: str = ""
    product_type: Optional[ProductType] = None


class ProductPo(SQLModel, table=True):
    """Persisted product row; the owned type is stored inline."""
    __tablename__ = "products"

    id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    name: str = Field(default="", max_length=200)
    code: str = Field(default="", max_length=50, index=True)
    version: int = Field(default=0)
    type_name: Optional[str] = Field(
        default=None,
        sa_column=Column(String(200), nullable=True),
        description="ProductType.name, NULL when the product has no type"
    )
    # Ordered [{"key": ..., "value": ...}]
    type_properties: Optional[List[Dict]] = Field(default=None, sa_column=Column(JSON))
