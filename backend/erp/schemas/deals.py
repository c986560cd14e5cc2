"""Deal Schemas — manual creation of a deal with its product lines."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from erp.core.normalize import clean_text, to_finite_number


class DealProductCreate(BaseModel):
    id: str | None = None
    name: str | None = None
    code: str | None = None
    quantity: Any = 0

    @field_validator("id", "name", "code", mode="before")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def check_quantity(cls, v):
        number = to_finite_number(v if v is not None else 0)
        if number is None or number < 0:
            raise ValueError("Cantidad inválida")
        return number


class DealCreate(BaseModel):
    deal_id: str
    title: str | None = None
    organization_name: str | None = None
    pipeline_label: str | None = None
    sede_label: str | None = None
    training_address: str | None = None
    products: list[DealProductCreate] = Field(default_factory=list)

    @field_validator("deal_id", mode="before")
    @classmethod
    def check_deal_id(cls, v):
        text = clean_text(v)
        if not text:
            raise ValueError("deal_id es obligatorio")
        return text

    @field_validator(
        "title", "organization_name", "pipeline_label", "sede_label",
        "training_address", mode="before",
    )
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)
