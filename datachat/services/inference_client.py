import http.client
import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from urllib.parse import quote

from datachat.core.errors import AuthError, NetworkError, UpstreamError
from datachat.services.file_processor import TabularData

logger = logging.getLogger("datachat.inference")


@dataclass(frozen=True)
class InferenceResponse:
    generated_text: str
    status_code: int


class InferenceClient:
    """Text-generation client for the Hugging Face Inference API.

    One POST per call, no retries. ``timeout=None`` keeps the transport default.
    """

    def __init__(
        self,
        base_url: str,
        chat_model: str,
        analysis_model: str | None = None,
        max_new_tokens: int = 256,
        timeout: float | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.chat_model = chat_model
        self.analysis_model = analysis_model or chat_model
        self.max_new_tokens = max_new_tokens
        self.timeout = timeout

    @staticmethod
    def build_analysis_prompt(data: TabularData, query: str) -> str:
        return f"Here is a table of data:\n{data.to_prompt()}\n\nQuestion: {query}\nAnswer:"

    @staticmethod
    def build_chat_prompt(context: str, query: str) -> str:
        if not context.strip():
            return query
        return f"{context}\n{query}"

    def analyze_data(self, data: TabularData, query: str, token: str) -> str:
        prompt = self.build_analysis_prompt(data, query)
        response = self.generate(self.analysis_model, prompt, token)
        return response.generated_text

    def chat(self, context: str, query: str, token: str) -> InferenceResponse:
        prompt = self.build_chat_prompt(context, query)
        return self.generate(self.chat_model, prompt, token)

    def generate(self, model: str, prompt: str, token: str) -> InferenceResponse:
        url = f"{self.base_url}/{quote(model, safe='/')}"
        payload = json.dumps(
            {
                "inputs": prompt,
                "parameters": {"max_new_tokens": self.max_new_tokens, "return_full_text": False},
            }
        ).encode("utf-8")
        request = urllib.request.Request(
            url,
            data=payload,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            method="POST",
        )

        kwargs = {} if self.timeout is None else {"timeout": self.timeout}
        try:
            with urllib.request.urlopen(request, **kwargs) as response:
                status = response.status
                body = response.read()
        except urllib.error.HTTPError as exc:
            detail = _error_detail(exc.read())
            logger.warning("Inference endpoint %s returned status %s", model, exc.code)
            if exc.code in (401, 403):
                raise AuthError(f"inference token rejected ({exc.code}){detail}", exc.code) from exc
            raise UpstreamError(f"inference endpoint returned status {exc.code}{detail}", exc.code) from exc
        except (urllib.error.URLError, http.client.HTTPException, TimeoutError, OSError) as exc:
            logger.error("Failed to reach inference endpoint %s: %s", model, exc)
            reason = getattr(exc, "reason", exc)
            raise NetworkError(f"could not reach inference endpoint: {reason}") from exc

        if not 200 <= status < 300:
            raise UpstreamError(f"inference endpoint returned status {status}{_error_detail(body)}", status)

        return InferenceResponse(generated_text=_parse_generated_text(body, status), status_code=status)


def _parse_generated_text(body: bytes, status: int) -> str:
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise UpstreamError("inference endpoint returned malformed JSON", status) from exc

    if isinstance(data, list) and data:
        data = data[0]
    if isinstance(data, dict):
        if isinstance(data.get("generated_text"), str):
            return data["generated_text"].strip()
        if data.get("error"):
            raise UpstreamError(f"inference endpoint error: {data['error']}", status)
    raise UpstreamError("inference response did not contain generated_text", status)


def _error_detail(body: bytes) -> str:
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return ""
    if isinstance(data, dict) and data.get("error"):
        return f": {data['error']}"
    return ""
