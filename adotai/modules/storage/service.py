import logging
import os
import time
import uuid
from supabase import Client
from typing import List, Optional, Tuple

from adotai.config import settings
from adotai.core.errors import error_message
from fastapi import HTTPException

logger = logging.getLogger(__name__)

# (filename, content, content_type)
UploadedFile = Tuple[str, bytes, Optional[str]]


class StorageService:
    """Avatar and animal photo uploads to Supabase Storage buckets; returns public URLs."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _upload(self, bucket: str, path: str, content: bytes, content_type: Optional[str]) -> str:
        options = {"cache-control": settings.storage_cache_control, "upsert": "false"}
        if content_type:
            options["content-type"] = content_type
        self.supabase.storage.from_(bucket).upload(path, content, options)
        return self.supabase.storage.from_(bucket).get_public_url(path)

    def upload_avatar(self, user_id: str, file: UploadedFile) -> str:
        filename, content, content_type = file
        ext = os.path.splitext(filename)[1].lstrip(".") or "jpg"
        path = f"{user_id}/{user_id}-{int(time.time() * 1000)}.{ext}"
        try:
            return self._upload(settings.avatars_bucket, path, content, content_type)
        except Exception as e:
            logger.error(f"Failed to upload avatar for {user_id}: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to upload avatar: {error_message(e)}")

    def upload_animal_photos(self, user_id: str, files: List[UploadedFile]) -> List[str]:
        uploaded_urls = []
        for filename, content, content_type in files:
            ext = os.path.splitext(filename)[1].lstrip(".") or "jpg"
            path = f"{user_id}/{user_id}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}.{ext}"
            try:
                uploaded_urls.append(self._upload(settings.animal_photos_bucket, path, content, content_type))
            except Exception as e:
                logger.error(f"Failed to upload animal photo {filename}: {e}")
                raise HTTPException(status_code=500, detail=f"Failed to upload animal photos: {error_message(e)}")
        return uploaded_urls
