"""
Images API Router
Image upload endpoint
"""

from fastapi import APIRouter, Depends, File, UploadFile, status

import models
from api.deps import get_current_user, services
from api.schemas.medication import ImageUploadResponse


router = APIRouter(prefix="/images", tags=["images"])


@router.post("", response_model=ImageUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_image(
    file: UploadFile = File(...),
    user: models.User = Depends(get_current_user)
):
    """
    Store an image (any image type, up to 5MB) and return its URL
    """
    image_storage = services.get_image_storage()

    data = await file.read(image_storage.max_bytes + 1)
    url = await image_storage.upload_image(
        user,
        data,
        file.content_type,
        file.filename
    )
    return ImageUploadResponse(url=url)
