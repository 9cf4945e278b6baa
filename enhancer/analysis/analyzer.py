"""AI-powered document design analyzer."""

import json
from enum import Enum
from pathlib import Path
from typing import Any

from enhancer.analysis.client_base import BaseAnalysisClient
from enhancer.analysis.exceptions import AnalysisError
from enhancer.analysis.prompt_loader import load_json_schema, load_prompt_template
from enhancer.logging.logger import Log
from enhancer.pipeline.cancellation import CancellationToken, check_cancelled


class Prompt(str, Enum):
    LAYOUT_ANALYSIS = "layout_analysis"
    COLOR_ANALYSIS = "color_analysis"
    TYPOGRAPHY_ANALYSIS = "typography_analysis"
    HIERARCHY_ANALYSIS = "hierarchy_analysis"
    ENGAGEMENT_ANALYSIS = "engagement_analysis"
    STRATEGY_REFINEMENT = "strategy_refinement"
    COLOR_PLAN = "color_plan"
    TYPOGRAPHY_PLAN = "typography_plan"
    LAYOUT_PLAN = "layout_plan"
    ASSET_PLAN = "asset_plan"


class Analyzer:
    """Asks an AI provider about a document and returns the parsed JSON answer.

    Each prompt has a template and a strict JSON schema. The vision model
    answers prompts about a page image; the text model answers planning
    prompts, with a stronger model available for premium runs.
    """

    def __init__(
        self,
        *,
        client: BaseAnalysisClient,
        vision_model: str,
        text_model: str,
        premium_text_model: str | None = None,
        temperature: float = 0.2,
        prompt_dir: Path | None = None,
    ) -> None:
        self._client = client
        self._vision_model = vision_model
        self._text_model = text_model
        self._premium_text_model = premium_text_model or text_model
        self._temperature = max(0.0, min(1.0, temperature))
        self._templates: dict[Prompt, str] = {}
        self._schemas: dict[Prompt, str] = {}
        self._schema_dicts: dict[Prompt, dict[str, object]] = {}
        for prompt in Prompt:
            self._templates[prompt] = load_prompt_template(prompt.value, prompt_dir)
            schema = load_json_schema(prompt.value, prompt_dir)
            self._schemas[prompt] = schema
            self._schema_dicts[prompt] = json.loads(schema)

    def analyze_image(
        self,
        prompt: Prompt,
        image_bytes: bytes,
        cancel_token: CancellationToken | None = None,
    ) -> dict[str, object]:
        """Run a vision prompt against a rendered page."""
        check_cancelled(cancel_token)
        raw_response = self._client.analyze_image(
            model=self._vision_model,
            temperature=self._temperature,
            prompt=self._build_prompt(prompt),
            image_bytes=image_bytes,
            schema_name=prompt.value,
            json_schema=self._schema_dicts[prompt],
        )
        check_cancelled(cancel_token)
        Log.debug(f"AI raw response ({prompt.value}):\n{raw_response}")
        return self._parse_json(raw_response)

    def generate(
        self,
        prompt: Prompt,
        cancel_token: CancellationToken | None = None,
        premium: bool = False,
        **fields: Any,
    ) -> dict[str, object]:
        """Run a text-only prompt whose template placeholders come from `fields`."""
        check_cancelled(cancel_token)
        raw_response = self._client.generate(
            model=self._premium_text_model if premium else self._text_model,
            temperature=self._temperature,
            prompt=self._build_prompt(prompt, **fields),
            schema_name=prompt.value,
            json_schema=self._schema_dicts[prompt],
        )
        check_cancelled(cancel_token)
        Log.debug(f"AI raw response ({prompt.value}):\n{raw_response}")
        return self._parse_json(raw_response)

    def _build_prompt(self, prompt: Prompt, **fields: Any) -> str:
        try:
            return self._templates[prompt].format(json_schema=self._schemas[prompt], **fields)
        except (KeyError, IndexError) as exc:
            raise AnalysisError(f"Missing prompt field for {prompt.value}: {exc}") from exc

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise AnalysisError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise AnalysisError("JSON response must be an object")
        return parsed
