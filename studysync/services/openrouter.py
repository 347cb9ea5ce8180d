import json
import requests
from flask import current_app


class OpenRouterError(Exception):
    """The completion API is unavailable or returned an unusable response."""


class OpenRouterService:
    """Wrapper around the OpenRouter chat completions API."""

    def __init__(self, api_key=None, base_url=None):
        self.base_url = base_url or current_app.config["OPENROUTER_BASE_URL"]
        self.api_key = api_key if api_key is not None else current_app.config["OPENROUTER_API_KEY"]
        self.default_model = current_app.config["DEFAULT_CHAT_MODEL"]

    def _headers(self):
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": "https://studysync.local",
            "X-Title": "StudySync",
        }

    def _post(self, payload, stream=False):
        if not self.api_key:
            raise OpenRouterError("OPENROUTER_API_KEY is not configured")
        try:
            resp = requests.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=payload,
                stream=stream,
                timeout=120,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise OpenRouterError(str(e)) from e
        return resp

    def chat_completion(self, messages, model=None, temperature=0.7, max_tokens=4096):
        """Non-streaming chat completion."""
        payload = {
            "model": model or self.default_model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        resp = self._post(payload)
        try:
            return resp.json()["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise OpenRouterError(f"Unexpected completion response: {e}") from e

    def chat_completion_stream(self, messages, model=None, temperature=0.7, max_tokens=4096):
        """Streaming chat completion. Yields content chunks."""
        payload = {
            "model": model or self.default_model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": True,
        }
        resp = self._post(payload, stream=True)

        try:
            for line in resp.iter_lines():
                if not line:
                    continue
                line_str = line.decode("utf-8", errors="replace")
                if not line_str.startswith("data: "):
                    continue
                data_str = line_str[6:]
                if data_str.strip() == "[DONE]":
                    break
                try:
                    chunk = json.loads(data_str)
                except json.JSONDecodeError:
                    continue
                if isinstance(chunk, dict) and chunk.get("error"):
                    raise OpenRouterError(f"Upstream error: {chunk['error']}")
                content = _delta_content(chunk)
                if content:
                    yield content
        except requests.RequestException as e:
            raise OpenRouterError(f"Completion stream interrupted: {e}") from e
        finally:
            resp.close()


def _delta_content(chunk):
    try:
        return chunk["choices"][0]["delta"].get("content") or ""
    except (KeyError, IndexError, TypeError, AttributeError):
        return ""
