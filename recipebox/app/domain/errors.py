from __future__ import annotations

NOT_FOUND_CODE = "PGRST116"


class RecipeBoxError(Exception):
    pass


class ConfigurationError(RecipeBoxError):
    def __init__(self, errors: list[str]):
        super().__init__(f"Configuration errors: {', '.join(errors)}")
        self.errors = errors


class RemoteStoreError(RecipeBoxError):
    def __init__(self, message: str, code: str | None = None, retryable: bool = False):
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable


class NotFoundError(RemoteStoreError):
    def __init__(self, message: str = "Row not found"):
        super().__init__(message, code=NOT_FOUND_CODE, retryable=False)


class AlreadyExistsError(RecipeBoxError):
    pass


class AuthRequiredError(RecipeBoxError):
    def __init__(self, message: str = "Please sign in to continue"):
        super().__init__(message)


class AuthenticationError(RecipeBoxError):
    pass


class ValidationError(RecipeBoxError):
    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = fields or []


class StorageUploadError(RecipeBoxError):
    def __init__(self, object_key: str, reason: str = "Upload failed"):
        super().__init__(f"Failed to upload {object_key}: {reason}")
        self.object_key = object_key
        self.reason = reason

