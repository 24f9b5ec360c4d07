# recipebox/app/schemas/recipes.py
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class IngredientInput(BaseModel):
    amount: str = ""
    unit: str = ""
    name: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.amount.strip() and self.unit.strip() and self.name.strip())


class StepInput(BaseModel):
    description: str = ""


class RecipeDraft(BaseModel):
    """Form data for creating or editing an authored recipe."""

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    prep_time: Optional[int] = Field(default=None, ge=0)
    cook_time: Optional[int] = Field(default=None, ge=0)
    servings: Optional[str] = None
    category: Optional[str] = None
    ingredients: list[IngredientInput] = Field(default_factory=list)
    cooking_steps: list[StepInput] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("description", "servings", "category", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("prep_time", "cook_time", mode="before")
    @classmethod
    def _parse_minutes(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return int(value) if value else None
        return value

    @field_validator("ingredients")
    @classmethod
    def _keep_complete_ingredients(cls, value: list[IngredientInput]) -> list[IngredientInput]:
        kept = [
            IngredientInput(amount=i.amount.strip(), unit=i.unit.strip(), name=i.name.strip())
            for i in value
            if i.is_complete
        ]
        if not kept:
            raise ValueError("at least one ingredient with amount, unit and name is required")
        return kept

    @field_validator("cooking_steps")
    @classmethod
    def _keep_filled_steps(cls, value: list[StepInput]) -> list[StepInput]:
        kept = [StepInput(description=s.description.strip()) for s in value if s.description.strip()]
        if not kept:
            raise ValueError("at least one cooking step is required")
        return kept

    def to_row(self, user_id: str, image_url: Optional[str]) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "prep_time": self.prep_time,
            "cook_time": self.cook_time,
            "servings": self.servings,
            "category": self.category,
            "image_url": image_url,
            "ingredients": [i.model_dump() for i in self.ingredients],
            "cooking_steps": [s.model_dump() for s in self.cooking_steps],
            "user_id": user_id,
        }


class CollectionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value
