import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from assessor.services.inference import DamageAssessor, _build_api_kwargs, parse_assessment
from assessor.utils.exceptions import AssessmentFailure, AssessmentSchemaError, ModelNotConfigured

VALID_REPLY = {
    "vehicle": {"make": "Honda", "model": "Civic", "color": "Blue"},
    "damage_summary": "Scratched rear door.",
    "cost_estimate": {"min": 300, "max": 800, "currency": "USD"},
}


def _fake_client(reply: str | None = None, error: Exception | None = None):
    client = MagicMock()
    if error is not None:
        client.chat.completions.create = AsyncMock(side_effect=error)
    else:
        message = SimpleNamespace(content=reply)
        response = SimpleNamespace(choices=[SimpleNamespace(message=message)])
        client.chat.completions.create = AsyncMock(return_value=response)
    return client


def test_parse_plain_json():
    assessment = parse_assessment(json.dumps(VALID_REPLY))
    assert assessment.vehicle.model == "Civic"
    assert assessment.cost_estimate.min == 300


def test_parse_fenced_json():
    raw = "```json\n" + json.dumps(VALID_REPLY) + "\n```"
    assert parse_assessment(raw).damage_summary == "Scratched rear door."


def test_parse_rejects_non_json():
    with pytest.raises(AssessmentSchemaError, match="not valid JSON"):
        parse_assessment("I'm sorry, I can't help with that.")


def test_parse_rejects_missing_fields():
    with pytest.raises(AssessmentSchemaError, match="schema"):
        parse_assessment(json.dumps({"damage_summary": "dent"}))


def test_parse_rejects_inverted_cost_range():
    reply = dict(VALID_REPLY, cost_estimate={"min": 900, "max": 100, "currency": "USD"})
    with pytest.raises(AssessmentSchemaError):
        parse_assessment(json.dumps(reply))


def test_parse_rejects_other_currency():
    reply = dict(VALID_REPLY, cost_estimate={"min": 100, "max": 900, "currency": "EUR"})
    with pytest.raises(AssessmentSchemaError):
        parse_assessment(json.dumps(reply))


def test_api_kwargs_for_gpt_models():
    kwargs = _build_api_kwargs("gpt-4o-mini", [])
    assert kwargs["temperature"] == 0.1
    assert "max_tokens" in kwargs
    assert kwargs["response_format"] == {"type": "json_object"}


def test_api_kwargs_for_reasoning_models():
    kwargs = _build_api_kwargs("o4-mini", [])
    assert "temperature" not in kwargs
    assert kwargs["max_completion_tokens"] == 4096


@pytest.mark.asyncio
async def test_assess_without_model_fails_before_calling_provider():
    client = _fake_client(json.dumps(VALID_REPLY))
    assessor = DamageAssessor(model="", client=client)

    with pytest.raises(ModelNotConfigured, match="OPENAI_MODEL"):
        await assessor.assess(b"\xff\xd8")

    client.chat.completions.create.assert_not_called()


@pytest.mark.asyncio
async def test_assess_success_sends_image():
    client = _fake_client(json.dumps(VALID_REPLY))
    assessor = DamageAssessor(model="gpt-4o-mini", client=client)

    assessment = await assessor.assess(b"\x89PNG", "image/png")

    assert assessment.vehicle.make == "Honda"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    content = kwargs["messages"][0]["content"]
    assert content[0]["type"] == "text"
    assert content[1]["image_url"]["url"].startswith("data:image/png;base64,")


@pytest.mark.asyncio
async def test_assess_wraps_provider_errors():
    client = _fake_client(error=ConnectionError("connection reset"))
    assessor = DamageAssessor(model="gpt-4o-mini", client=client)

    with pytest.raises(AssessmentFailure, match="connection reset"):
        await assessor.assess(b"\xff\xd8")


@pytest.mark.asyncio
async def test_assess_empty_reply_is_schema_error():
    assessor = DamageAssessor(model="gpt-4o-mini", client=_fake_client(None))

    with pytest.raises(AssessmentSchemaError):
        await assessor.assess(b"\xff\xd8")
