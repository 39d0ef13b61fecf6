import json
import logging
from typing import Any, Dict

from pydantic import ValidationError

from ..core.exceptions import MalformedResponseError
from ..models.analysis import AnalysisResult

logger = logging.getLogger("recall-context.extractor")

def _strip_markdown_code_blocks(text: str) -> str:
    """Remove a ```json ... ``` wrapper the model sometimes adds"""
    text = text.strip()
    if not text.startswith("```"):
        return text
    lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
    return "\n".join(lines).strip()

def extract_analysis(payload: Dict[str, Any]) -> AnalysisResult:
    """
    Turn a Messages API payload into an AnalysisResult.

    The first content block's text must be a JSON document matching the
    analysis schema. Provenance fields (model, usage, stop_reason) are copied
    from the envelope; their absence is tolerated.

    Raises:
        MalformedResponseError: no content, empty text, invalid JSON or a
            document that does not match the schema
    """
    if not isinstance(payload, dict):
        raise MalformedResponseError("Invalid response format: payload is not an object")

    content = payload.get("content")
    if not isinstance(content, list) or not content:
        raise MalformedResponseError("Invalid response format: no content array found")

    first = content[0]
    text = first.get("text") if isinstance(first, dict) else None
    if not isinstance(text, str) or not text.strip():
        raise MalformedResponseError("Invalid response format: no text content found")

    logger.debug(f"Extracted text content: {text[:200]}")

    try:
        document = json.loads(_strip_markdown_code_blocks(text))
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Failed to parse analysis JSON: {e.msg}") from e

    if not isinstance(document, dict):
        raise MalformedResponseError("Invalid analysis format: expected a JSON object")

    usage = payload.get("usage")
    document = dict(document)
    document["ai_metadata"] = {
        "model": payload.get("model") or "",
        "usage": usage if isinstance(usage, dict) else {},
        "stop_reason": payload.get("stop_reason") or "",
    }
    document.pop("aiMetadata", None)

    try:
        analysis = AnalysisResult.model_validate(document)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise MalformedResponseError(
            f"Analysis does not match expected schema: {fields}",
            {"errors": e.errors(include_url=False, include_context=False, include_input=False)}
        ) from e

    logger.info(
        f"Parsed meeting analysis: {len(analysis.key_points)} key points, "
        f"{len(analysis.decisions)} decisions, {len(analysis.action_items)} actions"
    )
    return analysis
