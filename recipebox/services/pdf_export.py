from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import List, Optional

from reportlab.lib.pagesizes import letter
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen.canvas import Canvas

from recipebox.app.domain.models import MyRecipe
from recipebox.app.schemas.catalog import RecipeInformation

from .errors import PdfExportError

logger = logging.getLogger(__name__)

APP_NAME = "RecipeBox"
BODY_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
MARGIN = 72

_TAG_RE = re.compile(r"<[^>]+>")


@dataclass
class RecipeDocument:
    """Everything that ends up on the exported page."""
    title: str
    image_url: Optional[str] = None
    description: Optional[str] = None
    servings: Optional[str] = None
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    category: Optional[str] = None
    ingredients: List[str] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)


def format_time(minutes: Optional[int]) -> str:
    if not minutes:
        return "N/A"
    if minutes < 60:
        return f"{minutes} min"
    hours, remaining = divmod(minutes, 60)
    return f"{hours} hr {remaining} min" if remaining else f"{hours} hr"


def strip_html(text: str) -> str:
    return " ".join(html.unescape(_TAG_RE.sub("", text)).split())


def document_from_my_recipe(recipe: MyRecipe) -> RecipeDocument:
    return RecipeDocument(
        title=recipe.title,
        image_url=recipe.image_url,
        description=recipe.description,
        servings=recipe.servings,
        prep_time=recipe.prep_time,
        cook_time=recipe.cook_time,
        category=recipe.category,
        ingredients=[item.display() for item in recipe.ingredients],
        instructions=[step.description for step in recipe.cooking_steps],
    )


def document_from_catalog(recipe: RecipeInformation) -> RecipeDocument:
    return RecipeDocument(
        title=recipe.title,
        image_url=recipe.image or None,
        description=strip_html(recipe.summary) if recipe.summary else None,
        servings=str(recipe.servings),
        cook_time=recipe.readyInMinutes,
        category=recipe.dishTypes[0] if recipe.dishTypes else None,
        ingredients=[item.display() for item in recipe.extendedIngredients],
        instructions=recipe.step_texts(),
    )


def wrap_text(text: str, font_name: str, font_size: int, max_width: float) -> List[str]:
    wrapped: List[str] = []
    for paragraph in text.split("\n"):
        words = paragraph.split()
        if not words:
            wrapped.append("")
            continue
        current = words[0]
        for word in words[1:]:
            candidate = current + " " + word
            if stringWidth(candidate, font_name, font_size) <= max_width:
                current = candidate
            else:
                wrapped.append(current)
                current = word
        wrapped.append(current)
    return wrapped


def meta_line(document: RecipeDocument) -> str:
    return "  |  ".join(
        [
            f"Prep Time: {format_time(document.prep_time)}",
            f"Cook Time: {format_time(document.cook_time)}",
            f"Servings: {document.servings or 'N/A'}",
        ]
    )


def export_recipe_pdf(document: RecipeDocument, path: Path | str, generated_on: Optional[date] = None) -> Path:
    """
    Render ``document`` as a single-column letter-size PDF.

    Args:
        document: Recipe content to render
        path: Destination file; parent directories are created
        generated_on: Date printed in the footer (defaults to today)

    Returns:
        The path that was written

    Raises:
        PdfExportError: If the file cannot be written
    """
    target = Path(path)
    footer = f"Generated with {APP_NAME} {(generated_on or date.today()).isoformat()}"

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        c = Canvas(str(target), pagesize=letter)
        width, height = letter
        max_w = width - 2 * MARGIN
        y = height - MARGIN

        def check_page(needed: float) -> None:
            nonlocal y
            if y - needed < MARGIN:
                c.showPage()
                y = height - MARGIN

        def draw_wrapped(text: str, font: str, size: int, indent: float = 0, leading: float = 14) -> None:
            nonlocal y
            c.setFont(font, size)
            for line in wrap_text(text, font, size, max_w - indent):
                check_page(leading)
                c.setFont(font, size)
                c.drawString(MARGIN + indent, y, line)
                y -= leading

        def heading(text: str) -> None:
            nonlocal y
            y -= 8
            check_page(20)
            c.setFont(BOLD_FONT, 13)
            c.drawString(MARGIN, y, text)
            y -= 18

        draw_wrapped(document.title, BOLD_FONT, 18, leading=24)

        if document.category:
            draw_wrapped(f"Category: {document.category}", BODY_FONT, 10)

        draw_wrapped(meta_line(document), BODY_FONT, 10, leading=10)
        c.setLineWidth(0.5)
        c.line(MARGIN, y, width - MARGIN, y)
        y -= 18

        if document.description:
            draw_wrapped(document.description, BODY_FONT, 11)

        if document.ingredients:
            heading("Ingredients")
            for item in document.ingredients:
                draw_wrapped("•  " + item, BODY_FONT, 11, indent=12)

        if document.instructions:
            heading("Instructions")
            for number, step in enumerate(document.instructions, start=1):
                draw_wrapped(f"Step {number}: {step}", BODY_FONT, 11, indent=12)

        y -= 16
        check_page(14)
        c.setFont(BODY_FONT, 9)
        c.drawCentredString(width / 2, y, footer)
        c.save()
    except OSError as error:
        logger.error("pdf_export.failed path=%s error=%s", target, error)
        raise PdfExportError(f"Failed to write PDF {target}: {error}") from error

    logger.info("pdf_export.written path=%s title=%r", target, document.title)
    return target
