# recipebox/app/infra/storage/supabase_storage.py
"""
Supabase Storage implementation of ImageStorage.
"""
from __future__ import annotations

import logging

from starlette.concurrency import run_in_threadpool
from supabase import Client

from recipebox.app.config import settings
from recipebox.app.deps import get_supabase
from recipebox.app.domain.errors import StorageUploadError
from recipebox.app.infra.storage.base import ImageStorage

logger = logging.getLogger(__name__)


class SupabaseImageStorage(ImageStorage):
    def __init__(self, client: Client | None = None, bucket_name: str | None = None):
        self._client = client or get_supabase()
        self.bucket_name = bucket_name or settings.RECIPE_IMAGES_BUCKET
        logger.info("SupabaseImageStorage initialized: bucket=%s", self.bucket_name)

    async def upload(self, object_key: str, content: bytes, content_type: str = "image/jpeg") -> str:
        bucket = self._client.storage.from_(self.bucket_name)
        try:
            await run_in_threadpool(
                bucket.upload,
                object_key,
                content,
                {"content-type": content_type, "upsert": "false"},
            )
            url = await run_in_threadpool(bucket.get_public_url, object_key)
        except Exception as error:
            logger.error("Image upload failed: bucket=%s key=%s error=%s", self.bucket_name, object_key, error)
            raise StorageUploadError(object_key, str(error)) from error

        logger.info("Image uploaded: bucket=%s key=%s size=%d", self.bucket_name, object_key, len(content))
        return str(url)
