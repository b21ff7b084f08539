import base64
import json

from itsdangerous import TimestampSigner

from datachat.core.config import Settings, get_session_secret
from datachat.core.errors import UpstreamError
from datachat.services.inference_client import InferenceClient, InferenceResponse


def make_settings(**overrides) -> Settings:
    values = {"huggingface_token": "hf_test_token", "app_env": "development"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeInferenceClient(InferenceClient):
    """Records prompts and answers with canned text instead of calling the network."""

    def __init__(self, answers: list[str] | None = None, error: Exception | None = None):
        super().__init__(base_url="https://inference.invalid", chat_model="fake/chat")
        self.answers = list(answers or [])
        self.error = error
        self.calls: list[dict] = []

    def generate(self, model: str, prompt: str, token: str) -> InferenceResponse:
        self.calls.append({"model": model, "prompt": prompt, "token": token})
        if self.error is not None:
            raise self.error
        text = self.answers.pop(0) if self.answers else f"answer {len(self.calls)}"
        return InferenceResponse(generated_text=text, status_code=200)


def failing_client(message: str = "inference endpoint returned status 503") -> FakeInferenceClient:
    return FakeInferenceClient(error=UpstreamError(message, 503))


def decode_session_cookie(value: str, settings: Settings) -> dict:
    signer = TimestampSigner(get_session_secret(settings))
    payload = signer.unsign(value.encode("utf-8"))
    return json.loads(base64.b64decode(payload))
