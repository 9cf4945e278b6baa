import base64
from typing import Any

import httpx
import openai

from enhancer.analysis.client_base import BaseAnalysisClient
from enhancer.analysis.exceptions import AnalysisError, AnalysisNetworkError

_SYSTEM_PROMPT = (
    "You are a senior visual designer reviewing documents. "
    "Answer only with JSON that matches the requested schema."
)


class OpenAIClientAdapter(BaseAnalysisClient):
    """Analysis client built on the OpenAI-compatible chat API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )

    def analyze_image(
        self,
        *,
        model: str,
        temperature: float,
        prompt: str,
        image_bytes: bytes,
        schema_name: str,
        json_schema: dict[str, object],
    ) -> str:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        content: list[dict[str, Any]] = [
            {"type": "text", "text": prompt},
            {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{encoded}"}},
        ]
        return self._complete(model, temperature, content, schema_name, json_schema)

    def generate(
        self,
        *,
        model: str,
        temperature: float,
        prompt: str,
        schema_name: str,
        json_schema: dict[str, object],
    ) -> str:
        return self._complete(model, temperature, prompt, schema_name, json_schema)

    def _complete(
        self,
        model: str,
        temperature: float,
        user_content: str | list[dict[str, Any]],
        schema_name: str,
        json_schema: dict[str, object],
    ) -> str:
        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": schema_name,
                        "strict": True,
                        "schema": json_schema,
                    },
                },
                messages=[
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {"role": "user", "content": user_content},
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise AnalysisNetworkError(
                f"AI provider network error: {exc}"
            ) from exc
        except openai.APIError as exc:
            raise AnalysisNetworkError(
                f"AI provider API error: {exc}"
            ) from exc

        if not response.choices:
            raise AnalysisError("AI returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise AnalysisError("AI returned empty response")
        return content
