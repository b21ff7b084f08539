import http.client
import io
import json
import unittest
import urllib.error
from unittest import mock

from datachat.core.errors import AuthError, NetworkError, UpstreamError
from datachat.services.file_processor import FileProcessor
from datachat.services.inference_client import InferenceClient


def fake_response(body, status: int = 200) -> mock.MagicMock:
    response = mock.MagicMock()
    response.status = status
    response.read.return_value = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    response.__enter__.return_value = response
    return response


def http_error(code: int, body: bytes = b"") -> urllib.error.HTTPError:
    return urllib.error.HTTPError("https://example.test", code, "error", hdrs=None, fp=io.BytesIO(body))


class InferenceClientTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = InferenceClient(
            base_url="https://inference.example.test/models/",
            chat_model="org/chat-model",
            analysis_model="org/table-model",
            max_new_tokens=64,
        )

    def test_chat_posts_prompt_with_bearer_token(self) -> None:
        with mock.patch("urllib.request.urlopen", return_value=fake_response([{"generated_text": " Hi there "}])) as urlopen:
            result = self.client.chat("previous turn", "hello", "hf_secret")

        self.assertEqual(result.generated_text, "Hi there")
        self.assertEqual(result.status_code, 200)
        request = urlopen.call_args.args[0]
        self.assertEqual(request.full_url, "https://inference.example.test/models/org/chat-model")
        self.assertEqual(request.get_method(), "POST")
        self.assertEqual(request.get_header("Authorization"), "Bearer hf_secret")
        body = json.loads(request.data.decode("utf-8"))
        self.assertEqual(body["inputs"], "previous turn\nhello")
        self.assertEqual(body["parameters"], {"max_new_tokens": 64, "return_full_text": False})
        self.assertNotIn("timeout", urlopen.call_args.kwargs)

    def test_chat_without_context_sends_query_only(self) -> None:
        with mock.patch("urllib.request.urlopen", return_value=fake_response({"generated_text": "ok"})) as urlopen:
            self.client.chat("", "hello", "token")
        body = json.loads(urlopen.call_args.args[0].data.decode("utf-8"))
        self.assertEqual(body["inputs"], "hello")

    def test_analyze_data_uses_analysis_model_and_table_prompt(self) -> None:
        data = FileProcessor().process("appliance,consumption_kwh\nTV,0.4\nHeater,2.0\n")
        with mock.patch("urllib.request.urlopen", return_value=fake_response([{"generated_text": "Heater most, TV least"}])) as urlopen:
            answer = self.client.analyze_data(data, "Which uses the most?", "token")

        self.assertEqual(answer, "Heater most, TV least")
        request = urlopen.call_args.args[0]
        self.assertTrue(request.full_url.endswith("/org/table-model"))
        prompt = json.loads(request.data.decode("utf-8"))["inputs"]
        self.assertIn("appliance,consumption_kwh\nTV,0.4\nHeater,2.0", prompt)
        self.assertIn("Question: Which uses the most?", prompt)

    def test_timeout_is_passed_when_configured(self) -> None:
        client = InferenceClient("https://x.test", "m", timeout=12.5)
        with mock.patch("urllib.request.urlopen", return_value=fake_response([{"generated_text": "ok"}])) as urlopen:
            client.chat("", "q", "token")
        self.assertEqual(urlopen.call_args.kwargs["timeout"], 12.5)

    def test_rejected_token_raises_auth_error(self) -> None:
        for code in (401, 403):
            with mock.patch("urllib.request.urlopen", side_effect=http_error(code, b'{"error": "Invalid credentials"}')):
                with self.assertRaises(AuthError) as ctx:
                    self.client.chat("", "q", "bad")
            self.assertEqual(ctx.exception.upstream_status, code)
            self.assertIn("Invalid credentials", str(ctx.exception))

    def test_other_http_errors_raise_upstream_error(self) -> None:
        with mock.patch("urllib.request.urlopen", side_effect=http_error(503, b'{"error": "Model is loading"}')):
            with self.assertRaises(UpstreamError) as ctx:
                self.client.chat("", "q", "token")
        self.assertEqual(ctx.exception.upstream_status, 503)
        self.assertIn("Model is loading", str(ctx.exception))

    def test_malformed_json_raises_upstream_error(self) -> None:
        with mock.patch("urllib.request.urlopen", return_value=fake_response(b"<html>oops</html>")):
            with self.assertRaises(UpstreamError):
                self.client.chat("", "q", "token")

    def test_missing_generated_text_raises_upstream_error(self) -> None:
        with mock.patch("urllib.request.urlopen", return_value=fake_response([{"label": "POSITIVE"}])):
            with self.assertRaises(UpstreamError):
                self.client.chat("", "q", "token")

    def test_transport_failure_raises_network_error(self) -> None:
        with mock.patch("urllib.request.urlopen", side_effect=urllib.error.URLError("connection refused")):
            with self.assertRaises(NetworkError) as ctx:
                self.client.chat("", "q", "token")
        self.assertIn("connection refused", str(ctx.exception))

    def test_truncated_body_raises_network_error(self) -> None:
        response = fake_response(b"")
        response.read.side_effect = http.client.IncompleteRead(b"partial")
        with mock.patch("urllib.request.urlopen", return_value=response):
            with self.assertRaises(NetworkError):
                self.client.chat("", "q", "token")

    def test_timeout_raises_network_error(self) -> None:
        with mock.patch("urllib.request.urlopen", side_effect=TimeoutError("timed out")):
            with self.assertRaises(NetworkError):
                self.client.chat("", "q", "token")


if __name__ == "__main__":
    unittest.main()
