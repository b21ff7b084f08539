from fastapi import Request

from datachat.core.config import Settings
from datachat.services.context_store import ContextStore
from datachat.services.file_processor import FileProcessor
from datachat.services.inference_client import InferenceClient


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_file_processor(request: Request) -> FileProcessor:
    return request.app.state.file_processor


def get_inference_client(request: Request) -> InferenceClient:
    return request.app.state.inference_client


def get_context_store(request: Request) -> ContextStore:
    return request.app.state.context_store
