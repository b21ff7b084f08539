import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request

from datachat.api.deps import get_app_settings, get_context_store, get_inference_client
from datachat.core.config import Settings
from datachat.core.errors import InferenceError
from datachat.schemas.chat import AnswerResponse, ChatRequest, StatusResponse
from datachat.services.context_store import ContextStore, append_exchange
from datachat.services.inference_client import InferenceClient

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=AnswerResponse)
@router.post("/api/chat", response_model=AnswerResponse)
@router.post("/api/v1/chat", response_model=AnswerResponse)
async def chat(
    payload: ChatRequest,
    request: Request,
    settings: Settings = Depends(get_app_settings),
    client: InferenceClient = Depends(get_inference_client),
    store: ContextStore = Depends(get_context_store),
) -> dict:
    context = store.get_context(request)
    try:
        response = await asyncio.to_thread(client.chat, context, payload.query, settings.huggingface_token)
    except InferenceError as exc:
        raise HTTPException(status_code=500, detail=f"Failed to chat with AI: {exc}") from exc

    store.set_context(request, append_exchange(context, payload.query, response.generated_text))
    return {"status": "success", "answer": response.generated_text}


@router.delete("/chat", response_model=StatusResponse)
@router.delete("/api/chat", response_model=StatusResponse)
@router.delete("/api/v1/chat", response_model=StatusResponse)
async def clear_chat(request: Request, store: ContextStore = Depends(get_context_store)) -> dict:
    store.clear_context(request)
    return {"status": "success"}
