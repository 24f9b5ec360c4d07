class ServiceError(Exception):
    pass


class CatalogRequestError(ServiceError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RecipeNotFoundError(CatalogRequestError):
    def __init__(self, recipe_id: int):
        super().__init__(f"Recipe not found: {recipe_id}", status_code=404)
        self.recipe_id = recipe_id


class RateLimitedError(CatalogRequestError):
    pass


class CatalogConfigurationError(ServiceError):
    pass


class NetworkTimeoutError(ServiceError):
    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(f"Network timeout after {timeout_seconds}s: {url}")
        self.url = url
        self.timeout_seconds = timeout_seconds


class PdfExportError(ServiceError):
    pass
