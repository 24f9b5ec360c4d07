# recipebox/app/infra/storage/base.py
"""
Abstract base class for image storage.
Recipe photos are uploaded before the recipe row is written; only the
resulting public URL is stored on the row.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from uuid import uuid4


class ImageStorage(ABC):
    """
    Abstract interface for public image uploads.

    Implementations:
    - SupabaseImageStorage: Supabase Storage bucket
    """

    @abstractmethod
    async def upload(self, object_key: str, content: bytes, content_type: str = "image/jpeg") -> str:
        """
        Upload an image and return its public URL.

        Args:
            object_key: The key/path where the image will be stored
            content: Raw image bytes
            content_type: MIME type of the content

        Returns:
            The public URL of the stored image

        Raises:
            StorageUploadError: If the upload is rejected or fails
        """
        pass

    def generate_object_key(self, user_id: str, filename: str) -> str:
        """
        Generate a standardized object key for a recipe photo.

        Format: {user_id}/{YYYYMMDD}_{uuid}_{filename}
        """
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d")
        safe_filename = re.sub(r"[^a-zA-Z0-9._-]", "_", filename) or "image.jpg"
        return f"{user_id}/{stamp}_{uuid4().hex[:8]}_{safe_filename}"
