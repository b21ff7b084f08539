import asyncio
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from datachat.api.deps import get_app_settings, get_file_processor, get_inference_client
from datachat.core.config import Settings
from datachat.core.errors import InferenceError, ParseError, PayloadTooLargeError, ValidationError
from datachat.schemas.chat import AnswerResponse
from datachat.services.file_processor import FileProcessor
from datachat.services.inference_client import InferenceClient

router = APIRouter(tags=["upload"])
logger = logging.getLogger("datachat.api")


@router.post("/upload", response_model=AnswerResponse)
@router.post("/api/upload", response_model=AnswerResponse)
@router.post("/api/v1/upload", response_model=AnswerResponse)
async def upload_file(
    file: UploadFile | None = File(default=None),
    settings: Settings = Depends(get_app_settings),
    processor: FileProcessor = Depends(get_file_processor),
    client: InferenceClient = Depends(get_inference_client),
) -> dict:
    if file is None:
        raise ValidationError("Unable to retrieve file")

    raw = await file.read(settings.max_upload_bytes + 1)
    if not raw:
        raise ValidationError("Uploaded file is empty")
    if len(raw) > settings.max_upload_bytes:
        raise PayloadTooLargeError(f"File exceeds {settings.max_upload_bytes} byte limit")

    try:
        data = processor.process_bytes(raw)
    except ParseError as exc:
        logger.info("Rejected upload %r: %s", file.filename, exc)
        raise HTTPException(status_code=500, detail=f"Failed to process file: {exc}") from exc

    try:
        answer = await asyncio.to_thread(client.analyze_data, data, settings.analysis_query, settings.huggingface_token)
    except InferenceError as exc:
        raise HTTPException(status_code=500, detail=f"Failed to analyze data: {exc}") from exc

    return {"status": "success", "answer": answer}
