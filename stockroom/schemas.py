"""Request models shared by the HTTP API and the desktop bridge.

The models only check the *shape* of a request (types, enumerations, ranges
that the wire format fixes). Business rules such as "names must not be empty"
or "codes are four characters" are enforced by the catalog and ledger so both
adapters report them with the same error keys.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import InvalidInput

ModelT = TypeVar("ModelT", bound=BaseModel)


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, allow_inf_nan=False)


def _blank_to_none(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


class CategoryCreateModel(_Request):
    category_name: str = Field("", alias="categoryName")


class CategoryUpdateModel(_Request):
    new_name: str = Field("", alias="newName")


class ProductCreateModel(_Request):
    product_name: str = Field("", alias="productName")
    principal_code: str = Field("", alias="principalCode")
    type_code: str = Field("", alias="typeCode")
    category_id: Optional[str] = None
    default_cost: Optional[float] = Field(None, ge=0)

    @field_validator("category_id", "default_cost", mode="before")
    @classmethod
    def normalise_optional(cls, value):
        return _blank_to_none(value)


class ProductUpdateModel(_Request):
    product_name: str = Field("", alias="productName")
    default_cost: Optional[float] = Field(None, ge=0)
    size_costs: Dict[str, float] = Field(default_factory=dict, alias="sizeCosts")
    category_id: Optional[str] = None

    @field_validator("default_cost", "category_id", mode="before")
    @classmethod
    def normalise_optional(cls, value):
        return _blank_to_none(value)

    @field_validator("size_costs", mode="before")
    @classmethod
    def normalise_size_costs(cls, value):
        if value is None:
            return {}
        return value

    @field_validator("size_costs")
    @classmethod
    def validate_size_costs(cls, value: Dict[str, float]) -> Dict[str, float]:
        cleaned: Dict[str, float] = {}
        for size, cost in value.items():
            label = str(size).strip()
            if not label:
                raise ValueError("size labels must not be empty")
            if cost < 0:
                raise ValueError(f"cost for size {label} must not be negative")
            cleaned[label] = cost
        return cleaned


class TransactionModel(_Request):
    barcode: str = Field(..., alias="lookupValue", min_length=1)
    amount: int
    mode: Literal["add", "cut", "adjust"]
    size: str = Field(..., min_length=1)
    total_sales_price: Optional[float] = Field(None, alias="totalSalesPrice", ge=0)

    @field_validator("total_sales_price", mode="before")
    @classmethod
    def normalise_price(cls, value):
        return _blank_to_none(value)

    @model_validator(mode="after")
    def check_amount(self) -> "TransactionModel":
        if self.mode == "adjust":
            if self.amount < 0:
                raise ValueError("adjust target must be zero or more")
        elif self.amount < 1:
            raise ValueError(f"{self.mode} amount must be at least 1")
        return self


class TransactionQueryModel(_Request):
    barcode: Optional[str] = None
    name: Optional[str] = None
    date: Optional[str] = Field(None, pattern=r"^\d{4}(-\d{2}(-\d{2})?)?$")
    type: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1)

    @field_validator("barcode", "name", "date", "type", "limit", mode="before")
    @classmethod
    def normalise_filters(cls, value):
        return _blank_to_none(value)


def parse_request(model: Type[ModelT], payload: Mapping[str, Any] | None) -> ModelT:
    """Validate ``payload`` against ``model``, raising ``InvalidInput`` on failure."""

    if payload is not None and not isinstance(payload, Mapping):
        raise InvalidInput(context={"fields": ["body"]})
    try:
        return model.model_validate(dict(payload or {}))
    except ValidationError as err:
        fields = sorted({".".join(str(part) for part in error["loc"]) or "body" for error in err.errors()})
        raise InvalidInput(context={"fields": fields}) from err
