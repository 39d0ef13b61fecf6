import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import requests

from ..core.config import settings
from ..core.exceptions import ExternalServiceError, ExternalServiceTimeout

logger = logging.getLogger("recall-context.anthropic")

DEFAULT_PROMPT_TEMPLATE = """You are an assistant that analyses meeting transcripts.

Read the transcript below and return ONLY a JSON object, with no markdown and no
explanation, using exactly these keys:

{
  "participants": [{"name": "string", "role": "string"}],
  "keyPoints": ["string"],
  "decisions": ["string"],
  "actionItems": [
    {
      "description": "string",
      "assignee": "string or null",
      "dueDate": "YYYY-MM-DD or null",
      "priority": "HIGH | MEDIUM | LOW"
    }
  ],
  "sentiment": "POSITIVE | NEUTRAL | NEGATIVE | MIXED",
  "tone": "one or two words describing the tone of the meeting",
  "summaryText": "a concise paragraph summarising the meeting"
}

Only include due dates that are stated or clearly implied in the transcript.

Transcript:
{transcript}
"""

def load_prompt_template(path: Optional[Path] = None) -> str:
    """Return the analysis prompt, read from ``path`` when one is configured"""
    path = path or settings.PROMPT_TEMPLATE_PATH
    if path:
        return Path(path).read_text(encoding="utf-8")
    return DEFAULT_PROMPT_TEMPLATE


class AnalysisClient(ABC):
    """Sends a transcript to the analysis service and returns its raw payload."""

    @abstractmethod
    def analyze(self, transcript: str, api_key: str) -> Dict[str, Any]:
        raise NotImplementedError


class AnthropicClient(AnalysisClient):
    """
    Anthropic Messages API client. One request per call, no retries.

    ``timeout`` is a wall-clock bound on the whole exchange. The request runs
    on a worker thread and the caller waits at most until the deadline, so a
    remote that keeps trickling bytes still fails with ExternalServiceTimeout.
    The worker streams the body and gives up the connection at its next chunk
    once the deadline has passed.
    """

    CHUNK_SIZE = 8192

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        prompt_template: Optional[str] = None,
    ) -> None:
        self.base_url = (settings.ANTHROPIC_BASE_URL if base_url is None else base_url).rstrip("/")
        self.model = settings.ANTHROPIC_MODEL if model is None else model
        self.max_tokens = settings.ANTHROPIC_MAX_TOKENS if max_tokens is None else max_tokens
        self.api_version = settings.ANTHROPIC_VERSION if api_version is None else api_version
        self.timeout = settings.ANTHROPIC_TIMEOUT if timeout is None else timeout
        self.prompt_template = load_prompt_template() if prompt_template is None else prompt_template

    def build_request(self, transcript: str) -> Dict[str, Any]:
        prompt = self.prompt_template.replace("{transcript}", transcript)
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

    def analyze(self, transcript: str, api_key: str) -> Dict[str, Any]:
        """
        Analyse a meeting transcript with Claude.

        Args:
            transcript: Full transcript text
            api_key: Decrypted Anthropic API key, sent only as a header

        Returns:
            dict: The decoded Messages API response

        Raises:
            ExternalServiceTimeout: the exchange did not finish within the configured timeout
            ExternalServiceError: HTTP error (classified by status) or transport failure
        """
        logger.info(f"Analyzing meeting transcript with Claude API (length: {len(transcript)} chars)")

        deadline = time.monotonic() + self.timeout
        cancelled = threading.Event()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="anthropic-call")
        future = executor.submit(self._exchange, transcript, api_key, deadline, cancelled)
        try:
            status_code, body = future.result(timeout=max(0.0, deadline - time.monotonic()))
        except FuturesTimeoutError:
            # The worker stops at its next chunk or read timeout
            cancelled.set()
            raise self._timeout_error()
        except requests.Timeout as e:
            raise self._timeout_error() from e
        except requests.RequestException as e:
            logger.error(f"Failed to reach Anthropic API: {e}")
            raise ExternalServiceError(f"Failed to call Anthropic API: {e}", status_code=500) from e
        finally:
            executor.shutdown(wait=False)

        if status_code != 200:
            message = self._error_message(body)
            kind = ExternalServiceError.kind_for_status(status_code)
            logger.error(f"Anthropic API error: status={status_code}, kind={kind}, message={message}")
            raise ExternalServiceError(
                f"Anthropic API error ({status_code}): {message}",
                status_code=status_code,
                kind=kind,
            )

        try:
            payload = json.loads(body.decode("utf-8"))
        except ValueError as e:
            logger.error("Anthropic API returned a non-JSON body")
            raise ExternalServiceError("Anthropic API returned an invalid JSON response", status_code=500) from e

        if not isinstance(payload, dict):
            raise ExternalServiceError("Anthropic API returned an unexpected response body", status_code=500)

        logger.info(
            f"Anthropic API call succeeded: model={payload.get('model')}, "
            f"stop_reason={payload.get('stop_reason')}"
        )
        return payload

    def _exchange(self, transcript: str, api_key: str, deadline: float, cancelled: threading.Event) -> Tuple[int, bytes]:
        """POST the request and stream the body back; runs on the worker thread"""
        response = requests.post(
            f"{self.base_url}/messages",
            headers={
                "x-api-key": api_key,
                "anthropic-version": self.api_version,
                "content-type": "application/json",
            },
            json=self.build_request(transcript),
            timeout=(self.timeout, self.timeout),
            stream=True,
        )
        try:
            chunks = []
            for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                if cancelled.is_set() or time.monotonic() > deadline:
                    raise requests.Timeout("Wall-clock deadline passed while reading the response")
                chunks.append(chunk)
            return response.status_code, b"".join(chunks)
        finally:
            response.close()

    def _timeout_error(self) -> ExternalServiceTimeout:
        logger.error(f"Anthropic API request timed out after {self.timeout}s")
        return ExternalServiceTimeout(f"Anthropic API request timed out after {self.timeout} seconds")

    @staticmethod
    def _error_message(body: bytes) -> str:
        """Pull the service's error message out of an error response body"""
        text = body.decode("utf-8", errors="replace").strip()
        try:
            data = json.loads(text)
        except ValueError:
            return text[:500] or "no error body"
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
        return str(data)[:500]
