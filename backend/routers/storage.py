import os
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import AuthUser, current_active_user
from core.config import settings
from db.database import get_async_session
from db.stored_object import StoredObject

router = APIRouter()

BUCKETS = ("inventory-images", "appliance-images", "avatars")
MAX_UPLOAD_BYTES = 25 * 1024 * 1024

EXT_TO_CONTENT_TYPE = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "heic": "image/heic",
    "heif": "image/heif",
    "svg": "image/svg+xml",
}


def public_url(path: str) -> str:
    base = settings.public_storage_url.rstrip("/")
    return f"{base}/{path}" if base else f"/storage/{path}"


def _valid_file_name(file_name: str) -> bool:
    return bool(file_name) and "/" not in file_name and "\\" not in file_name and file_name not in (".", "..")


@router.post("/api/storage/upload", status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    bucket: Optional[str] = Form(None),
    fileName: Optional[str] = Form(None),
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Store an uploaded file under `<bucket>/<fileName>` (overwrites).
    Returns the public URL and the stored path.
    """
    if file is None or not bucket or not fileName:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields (file, bucket, fileName)",
        )
    if bucket not in BUCKETS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid bucket name")
    if not _valid_file_name(fileName):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file name")

    data = await file.read()
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File size must be less than 25MB")

    content_type = (file.content_type or "").strip().lower()
    if not content_type or content_type == "application/octet-stream":
        ext = os.path.splitext(fileName)[1].lower().lstrip(".")
        content_type = EXT_TO_CONTENT_TYPE.get(ext, "application/octet-stream")

    path = f"{bucket}/{fileName}"
    res = await db.execute(select(StoredObject).where(StoredObject.path == path))
    obj = res.scalar_one_or_none()
    if obj is None:
        obj = StoredObject(path=path)
        db.add(obj)
    obj.data = data
    obj.content_type = content_type
    await db.commit()

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"success": True, "url": public_url(path), "filePath": path},
    )


@router.get("/storage/{bucket}/{file_name}", response_class=Response)
async def serve_file(
    bucket: str,
    file_name: str,
    db: AsyncSession = Depends(get_async_session),
):
    """Serve a stored file. No auth required so img src works."""
    if bucket not in BUCKETS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    res = await db.execute(select(StoredObject).where(StoredObject.path == f"{bucket}/{file_name}"))
    obj = res.scalar_one_or_none()
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Object Not Found")
    return Response(
        content=bytes(obj.data),
        media_type=obj.content_type,
        headers={"Cache-Control": "public, max-age=31536000"},
    )
