"""LLM prompt strings and response parsing for the chat suggestion step.

The prompt is a fixed contract with the model: the candidate list is
embedded verbatim (one JSON object per candidate, joined by ", ") and the
model must answer with a single JSON object using the field names of
models.Decision. Wording may be tuned; field names may not.
"""

import json

from pydantic import ValidationError as PydanticValidationError

from pkd_classifier.exceptions import DecodeError
from pkd_classifier.models import CandidateRecord, Decision, dump_candidates

SUGGESTION_PROMPT_TEMPLATE = """\
Na podstawie opisu działalności podanego przez użytkownika wybierz z poniższej listy \
element, który najlepiej do niego pasuje: {candidate_list}.
Odpowiedz wyłącznie obiektem JSON zgodnym ze schematem:
{{
  "id": string,            // identyfikator wybranego elementu z listy
  "version": number,       // wersja rekordu
  "score": number,         // stopień dopasowania (0–1)
  "payload": {{
    "grupaKlasaPodklasa": string,   // kod PKD
    "nazwaGrupowania": string,      // nazwa grupowania
    "opisDodatkowy": string         // szczegółowy opis
  }}
}}

Przykładowa odpowiedź:
{{
  "id": "5f5d9030-ff0a-4a2c-b2e9-e31ef5e1abed",
  "version": 739,
  "score": 0.5785652,
  "payload": {{
    "grupaKlasaPodklasa": "43.91.Z",
    "nazwaGrupowania": "Roboty murarskie",
    "opisDodatkowy": "Podklasa ta obejmuje: murowanie, układanie kostki, osadzanie kamienia i inne roboty murarskie."
  }}
}}
"""


def build_candidate_list(candidates: list[CandidateRecord]) -> str:
    """Render candidates exactly as they are cached, one JSON object each."""
    return ", ".join(json.dumps(item, ensure_ascii=False) for item in dump_candidates(candidates))


def build_suggestion_prompt(candidates: list[CandidateRecord]) -> str:
    """Assemble the system prompt asking the model to pick one candidate.

    Args:
        candidates: Candidate records from vector search.

    Returns:
        Prompt text ready to send as the system message.
    """
    return SUGGESTION_PROMPT_TEMPLATE.format(candidate_list=build_candidate_list(candidates))


def parse_decision(text: str | None) -> Decision:
    """Parse a model response (or a cached value) into a Decision.

    Raises:
        DecodeError: If the text is empty, not JSON, or does not match the schema.
    """
    if not text:
        raise DecodeError("Empty decision text")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Decision is not valid JSON: {e}") from e
    try:
        return Decision.model_validate(data)
    except PydanticValidationError as e:
        raise DecodeError(f"Decision does not match schema: {e}") from e
