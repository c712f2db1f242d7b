"""Pydantic models for the per-request assignment output."""

from typing import Any

from pydantic import BaseModel, Field, computed_field

from src.ab.experiment import Variant
from src.ab.token import encode_token


class Assignment(BaseModel):
    """The experiment and variants a visitor sees on this request.

    When no experiment could be chosen `experiment_index` is None and every
    collection is empty; the shape is the same either way.
    """

    experiment_index: int | None = None
    variant_indexes: list[int] = Field(default_factory=list)
    active_variants: list[Variant] = Field(default_factory=list)
    classes: list[str] = Field(default_factory=list)

    # Fields of the chosen experiment
    experiment_id: str = ""
    name: str = ""
    weight: float | None = None
    sections: int = 0
    max_age: int | None = None
    variants: list[Variant] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.experiment_index is not None

    @computed_field
    @property
    def token(self) -> str:
        if not self.is_active:
            return ""
        return encode_token(self.experiment_id, self.variant_indexes)
