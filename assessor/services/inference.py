import base64
import json
import logging

from pydantic import ValidationError

from assessor.schemas.assessment import DamageAssessment
from assessor.utils.exceptions import AssessmentFailure, AssessmentSchemaError, ModelNotConfigured

logger = logging.getLogger(__name__)

ASSESSMENT_PROMPT = """\
You are an automotive insurance claims assessor. Analyze this vehicle damage image.
Identify the vehicle make, model, and color. Describe all visible damage in detail,
including affected panels, severity, and any safety concerns. Provide a repair cost
estimate range in USD.

Respond ONLY with a JSON object (no additional text) of this shape:
{
  "vehicle": {"make": "...", "model": "...", "color": "..."},
  "damage_summary": "...",
  "cost_estimate": {"min": 0, "max": 0, "currency": "USD"}
}
"""


def _strip_code_fences(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        text = "\n".join(lines)
    return text


def _build_api_kwargs(model: str, content: list[dict]) -> dict:
    """Build OpenAI API kwargs based on model type."""
    api_kwargs: dict = {
        "model": model,
        "messages": [{"role": "user", "content": content}],
        "response_format": {"type": "json_object"},
    }

    if model.startswith("o"):
        # o-series reasoning models: no temperature, max_completion_tokens
        api_kwargs["max_completion_tokens"] = 4096
    else:
        api_kwargs["max_tokens"] = 1024
        api_kwargs["temperature"] = 0.1

    return api_kwargs


def parse_assessment(raw: str) -> DamageAssessment:
    """Parse a model reply into a DamageAssessment or raise AssessmentSchemaError."""
    try:
        return DamageAssessment.model_validate(json.loads(_strip_code_fences(raw)))
    except json.JSONDecodeError as e:
        raise AssessmentSchemaError(f"Model reply is not valid JSON: {e.msg}") from e
    except ValidationError as e:
        raise AssessmentSchemaError(
            f"Model reply does not match the assessment schema ({e.error_count()} errors)"
        ) from e


class DamageAssessor:
    """Asks an OpenAI vision model for a structured damage assessment of one image."""

    def __init__(self, model: str, api_key: str = "", base_url: str = "", client=None):
        self.model = model
        self.api_key = api_key
        self.base_url = base_url
        self._client = client

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI

            kwargs = {"api_key": self.api_key or None}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    async def assess(self, image: bytes, content_type: str = "image/jpeg") -> DamageAssessment:
        if not self.model:
            raise ModelNotConfigured("OPENAI_MODEL environment variable is not set")

        b64 = base64.b64encode(image).decode("utf-8")
        content: list[dict] = [
            {"type": "text", "text": ASSESSMENT_PROMPT},
            {
                "type": "image_url",
                "image_url": {"url": f"data:{content_type};base64,{b64}", "detail": "high"},
            },
        ]

        logger.info("Calling OpenAI model=%s with %d image bytes", self.model, len(image))
        try:
            response = await self._get_client().chat.completions.create(
                **_build_api_kwargs(self.model, content)
            )
        except Exception as e:
            raise AssessmentFailure(f"Model request failed: {e}") from e

        raw_text = response.choices[0].message.content or ""
        logger.info("OpenAI raw response (%d chars): %s", len(raw_text), raw_text[:500])
        return parse_assessment(raw_text)
