from fastapi import APIRouter, UploadFile, File, HTTPException

from ..config import get_settings
from ..models import ExtractedReceipt, ExtractionRequest
from ..services.extraction import get_extractor

router = APIRouter(prefix="/ocr", tags=["OCR"])


async def read_image_upload(file: UploadFile) -> tuple[bytes, str]:
    """Read an uploaded image, rejecting non-images and oversized files."""
    media_type = file.content_type or "image/jpeg"
    if not media_type.startswith("image/"):
        raise HTTPException(status_code=400, detail=f"Unsupported file type: {media_type}")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(content) > get_settings().max_upload_bytes:
        raise HTTPException(status_code=413, detail="Uploaded file is too large")
    return content, media_type


@router.post("/parse/upload", response_model=ExtractedReceipt)
async def parse_receipt_upload(file: UploadFile = File(...)) -> ExtractedReceipt:
    """
    Extract receipt data from an uploaded image.

    Nothing is persisted; the result is a draft for review.
    """
    content, media_type = await read_image_upload(file)

    try:
        return await get_extractor().extract(content, media_type)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"OCR processing failed: {str(e)}")


@router.post("/parse/base64", response_model=ExtractedReceipt)
async def parse_receipt_base64(request: ExtractionRequest) -> ExtractedReceipt:
    """Extract receipt data from a base64-encoded image."""
    try:
        return await get_extractor().extract(request.image_base64, request.media_type)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"OCR processing failed: {str(e)}")
