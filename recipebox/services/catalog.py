from __future__ import annotations

import logging
from typing import Any

import httpx

from recipebox.app.config import settings
from recipebox.app.domain.models import RecipeSummary
from recipebox.app.schemas.catalog import CatalogRecipe, RecipeInformation

from .errors import (
    CatalogConfigurationError,
    CatalogRequestError,
    NetworkTimeoutError,
    RateLimitedError,
    RecipeNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_RESULTS = 10
DEFAULT_RANDOM_COUNT = 4
RATE_LIMIT_STATUSES = {402, 429}


class RecipeCatalog:
    """Read-only client for the Spoonacular recipe API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.SPOONACULAR_API_KEY
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.SPOONACULAR_BASE_URL,
            timeout=self.timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        if not self.api_key:
            raise CatalogConfigurationError("SPOONACULAR_API_KEY is required")

        query = {**(params or {}), "apiKey": self.api_key}
        try:
            response = await self._client.get(path, params=query)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as error:
            raise NetworkTimeoutError(path, self.timeout) from error
        except httpx.HTTPStatusError as error:
            status = error.response.status_code
            logger.error("catalog.http_error path=%s status=%s", path, status)
            if status in RATE_LIMIT_STATUSES:
                raise RateLimitedError("Recipe API quota exhausted", status_code=status) from error
            raise CatalogRequestError(f"HTTP error from recipe API: {error}", status_code=status) from error
        except httpx.RequestError as error:
            logger.error("catalog.request_failed path=%s error=%s", path, error)
            raise CatalogRequestError(f"Recipe API unreachable: {error}") from error

    async def search_recipes(self, query: str, number: int = DEFAULT_SEARCH_RESULTS) -> list[RecipeSummary]:
        data = await self._get(
            "/recipes/complexSearch",
            {
                "query": query,
                "number": number,
                "addRecipeInformation": "true",
                "fillIngredients": "false",
            },
        )
        results = [CatalogRecipe.model_validate(item).to_summary() for item in data.get("results", [])]
        logger.info("catalog.search query=%r results=%d", query, len(results))
        return results

    async def get_random_recipes(self, count: int = DEFAULT_RANDOM_COUNT) -> list[RecipeSummary]:
        data = await self._get("/recipes/random", {"number": count})
        return [CatalogRecipe.model_validate(item).to_summary() for item in data.get("recipes", [])]

    async def get_recipe_information(self, recipe_id: int) -> RecipeInformation:
        try:
            data = await self._get(f"/recipes/{recipe_id}/information", {"includeNutrition": "false"})
        except CatalogRequestError as error:
            if error.status_code == 404:
                raise RecipeNotFoundError(recipe_id) from error
            raise
        return RecipeInformation.model_validate(data)
