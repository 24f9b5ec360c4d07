# recipebox/app/schemas/catalog.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from recipebox.app.domain.models import RecipeSummary

DEFAULT_SERVINGS = 4
DEFAULT_READY_IN_MINUTES = 30


class CatalogModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CatalogRecipe(CatalogModel):
    id: int
    title: str
    image: str = ""
    servings: int = DEFAULT_SERVINGS
    readyInMinutes: int = DEFAULT_READY_IN_MINUTES
    sourceName: Optional[str] = None

    @field_validator("servings", mode="before")
    @classmethod
    def _default_servings(cls, value: object) -> object:
        return value or DEFAULT_SERVINGS

    @field_validator("readyInMinutes", mode="before")
    @classmethod
    def _default_ready_in(cls, value: object) -> object:
        return value or DEFAULT_READY_IN_MINUTES

    @field_validator("image", mode="before")
    @classmethod
    def _blank_image(cls, value: object) -> object:
        return value or ""

    def to_summary(self) -> RecipeSummary:
        return RecipeSummary(
            id=self.id,
            title=self.title,
            image=self.image,
            servings=self.servings,
            ready_in_minutes=self.readyInMinutes,
            source_name=self.sourceName,
        )


class MeasureAmount(CatalogModel):
    unit: str = ""
    value: float = 0


class IngredientAmount(CatalogModel):
    metric: Optional[MeasureAmount] = None
    us: Optional[MeasureAmount] = None


class ExtendedIngredient(CatalogModel):
    name: str = ""
    amount: Optional[float] = None
    unit: str = ""
    original: str = ""

    def display(self) -> str:
        if self.original:
            return self.original
        amount = f"{self.amount:g}" if self.amount else ""
        return " ".join(part for part in (amount, self.unit, self.name) if part)


class InstructionStep(CatalogModel):
    number: int
    step: str


class Instruction(CatalogModel):
    name: str = ""
    steps: list[InstructionStep] = Field(default_factory=list)


class RecipeInformation(CatalogRecipe):
    summary: Optional[str] = None
    dishTypes: list[str] = Field(default_factory=list)
    extendedIngredients: list[ExtendedIngredient] = Field(default_factory=list)
    analyzedInstructions: list[Instruction] = Field(default_factory=list)
    instructions: Optional[str] = None

    def step_texts(self) -> list[str]:
        steps = [step.step for block in self.analyzedInstructions for step in block.steps]
        if steps:
            return steps
        if self.instructions:
            return [line.strip() for line in self.instructions.splitlines() if line.strip()]
        return []
