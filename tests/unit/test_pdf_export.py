from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from recipebox.app.domain.models import CookingStep, Ingredient, MyRecipe
from recipebox.app.schemas.catalog import RecipeInformation
from recipebox.services.errors import PdfExportError
from recipebox.services.pdf_export import (
    RecipeDocument,
    document_from_catalog,
    document_from_my_recipe,
    export_recipe_pdf,
    format_time,
    meta_line,
    wrap_text,
)


class TestFormatTime:
    @pytest.mark.parametrize(
        "minutes, expected",
        [
            (None, "N/A"),
            (0, "N/A"),
            (45, "45 min"),
            (60, "1 hr"),
            (90, "1 hr 30 min"),
            (125, "2 hr 5 min"),
        ],
    )
    def test_format(self, minutes, expected: str) -> None:
        assert format_time(minutes) == expected


class TestDocuments:
    def test_from_my_recipe(self) -> None:
        recipe = MyRecipe(
            id="r1",
            user_id="u1",
            title="Banana Bread",
            servings="8",
            prep_time=15,
            cook_time=60,
            category="Baking",
            ingredients=(Ingredient("3", "pcs", "bananas"),),
            cooking_steps=(CookingStep("Mash the bananas"), CookingStep("Bake")),
        )

        document = document_from_my_recipe(recipe)

        assert document.ingredients == ["3 pcs bananas"]
        assert document.instructions == ["Mash the bananas", "Bake"]
        assert meta_line(document) == "Prep Time: 15 min  |  Cook Time: 1 hr  |  Servings: 8"

    def test_from_catalog_strips_markup(self) -> None:
        info = RecipeInformation.model_validate(
            {
                "id": 42,
                "title": "Garlic Pasta",
                "readyInMinutes": 25,
                "summary": "<b>Quick</b> pasta &amp; garlic",
                "dishTypes": ["main course", "dinner"],
                "extendedIngredients": [{"name": "garlic", "original": "3 cloves garlic"}],
                "analyzedInstructions": [{"steps": [{"number": 1, "step": "Boil."}]}],
            }
        )

        document = document_from_catalog(info)

        assert document.description == "Quick pasta & garlic"
        assert document.category == "main course"
        assert document.servings == "4"
        assert document.cook_time == 25
        assert document.prep_time is None
        assert document.ingredients == ["3 cloves garlic"]
        assert document.instructions == ["Boil."]

    def test_meta_line_without_values(self) -> None:
        assert meta_line(RecipeDocument(title="Toast")) == "Prep Time: N/A  |  Cook Time: N/A  |  Servings: N/A"


class TestWrapText:
    def test_long_line_is_split(self) -> None:
        lines = wrap_text("word " * 60, "Helvetica", 11, 200)

        assert len(lines) > 1
        assert " ".join(lines) == ("word " * 60).strip()


class TestExportRecipePdf:
    def test_writes_pdf(self, tmp_path: Path) -> None:
        document = RecipeDocument(
            title="Banana Bread",
            description="Moist and easy",
            servings="8",
            prep_time=15,
            cook_time=60,
            category="Baking",
            ingredients=["3 pcs bananas", "2 cups flour"],
            instructions=["Mash the bananas", "Bake for an hour"],
        )

        path = export_recipe_pdf(document, tmp_path / "out" / "banana.pdf", generated_on=date(2024, 1, 15))

        assert path == tmp_path / "out" / "banana.pdf"
        assert path.read_bytes().startswith(b"%PDF")

    def test_long_recipe_spans_pages(self, tmp_path: Path) -> None:
        document = RecipeDocument(
            title="Feast",
            ingredients=[f"{n} cups of something" for n in range(80)],
            instructions=["Stir slowly and keep stirring until everything looks right. " * 4] * 30,
        )

        path = export_recipe_pdf(document, tmp_path / "feast.pdf")

        assert path.stat().st_size > 0

    def test_unwritable_path_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file")

        with pytest.raises(PdfExportError):
            export_recipe_pdf(RecipeDocument(title="Toast"), blocker / "toast.pdf")
