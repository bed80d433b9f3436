import os
from typing import Tuple

from fastapi import HTTPException, UploadFile

from config import settings

AVATAR_EXTENSIONS = ["png", "jpg", "jpeg", "webp"]


def validate_file_extension(filename: str, extension_list=None):
    extension_list = extension_list or AVATAR_EXTENSIONS
    extension = os.path.splitext(filename or "")[-1].lower().replace(".", "")
    if extension not in extension_list:
        raise HTTPException(status_code=400, detail="Invalid file format")
    return extension


async def read_upload(file: UploadFile) -> Tuple[bytes, str]:
    file_content = await file.read()
    if len(file_content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File is too large")
    return file_content, file.content_type or "application/octet-stream"


async def read_avatar(file: UploadFile) -> dict:
    validate_file_extension(filename=file.filename)
    data, content_type = await read_upload(file)
    return {"data": data, "content_type": content_type}


def avatar_url_for(base_url: str, user: dict):
    if not (user.get("avatar") or {}).get("data"):
        return None
    # cache-busting stamp so clients reload a replaced avatar
    changed_at = user.get("avatar_updated_at") or user.get("created_at")
    stamp = int(changed_at.timestamp()) if changed_at else 0
    return f"{base_url.rstrip('/')}/api/users/{user['_id']}/avatar?t={stamp}"
