import logging
from typing import Optional
from uuid import uuid4

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from starlette.concurrency import run_in_threadpool

from socialnet.auth import authenticate_token
from socialnet.config import settings
from socialnet.models import User
from socialnet.schemas import UploadOut
from socialnet.storage import ImageStorage, get_image_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["Upload"])

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


@router.post("/image", response_model=UploadOut, status_code=status.HTTP_201_CREATED)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(authenticate_token),
    storage: ImageStorage = Depends(get_image_storage),
):
    if image is None or not image.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='No image provided (field "image")',
        )
    if image.content_type not in settings.allowed_image_types:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Allowed types: PNG, JPEG, WEBP, GIF",
        )

    # Read one byte past the ceiling so oversized files are detected without buffering them whole
    data = await image.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image too large. Maximum size is {limit_mb} MB",
        )
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded image is empty")

    ext = EXTENSIONS.get(image.content_type, "bin")
    key = f"{settings.upload_folder}/{uuid4().hex}.{ext}"
    try:
        stored = await run_in_threadpool(storage.upload_image, key, data, image.content_type)
    except (BotoCoreError, ClientError):
        logger.exception("Image upload failed for user %s", current_user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Image upload failed"
        )

    logger.info("User %s uploaded image %s (%d bytes)", current_user.id, stored.public_id, len(data))
    return UploadOut(url=stored.url, public_id=stored.public_id)
