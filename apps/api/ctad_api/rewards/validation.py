"""Structural validation of process capture payloads.

Checks run in a fixed order and stop at the first failure so the extension
always gets one specific, human-readable reason.
"""

from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ctad_api.errors import ValidationError
from ctad_api.rewards.schema import ProcessDeclarationInput

PROMPT_VERSION_FIELDS = ("id", "content", "timestamp", "mode")
OUTPUT_FIELDS = ("id", "promptVersionId", "timestamp")


def _missing(value: Any) -> bool:
    return value is None or value == "" or value is False


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted)."""
    if not isinstance(value, str):
        raise ValueError("timestamp must be a string")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _entry_missing_fields(entry: Any, fields: tuple[str, ...]) -> bool:
    if not isinstance(entry, dict):
        return True
    return any(_missing(entry.get(field)) for field in fields)


def validate_process_input(payload: Any) -> ProcessDeclarationInput:
    """
    Validate a raw JSON payload and return the parsed input.

    Raises:
        ValidationError: first failing check, with ``field`` and, for list
            entries, ``index`` set.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    platform = payload.get("platform")
    if not isinstance(platform, str) or not platform.strip():
        raise ValidationError("Platform is required", field="platform")

    started = payload.get("sessionStartedAt")
    if _missing(started):
        raise ValidationError("Session start time is required", field="sessionStartedAt")
    try:
        parse_timestamp(started)
    except ValueError:
        raise ValidationError(
            "Invalid session start time format (expected ISO 8601)", field="sessionStartedAt"
        ) from None

    lineage = payload.get("promptLineage")
    if not isinstance(lineage, list):
        raise ValidationError("Prompt lineage must be an array", field="promptLineage")

    rejected = payload.get("rejectedOutputs")
    if not isinstance(rejected, list):
        raise ValidationError("Rejected outputs must be an array", field="rejectedOutputs")

    for i, version in enumerate(lineage):
        if _entry_missing_fields(version, PROMPT_VERSION_FIELDS):
            raise ValidationError(
                f"Invalid prompt version at index {i}: missing required fields "
                f"({', '.join(PROMPT_VERSION_FIELDS)})",
                field="promptLineage",
                index=i,
            )

    for i, rejection in enumerate(rejected):
        if _entry_missing_fields(rejection, OUTPUT_FIELDS):
            raise ValidationError(
                f"Invalid rejected output at index {i}: missing required fields "
                f"({', '.join(OUTPUT_FIELDS)})",
                field="rejectedOutputs",
                index=i,
            )

    selection = payload.get("selectedOutput")
    if selection is not None and _entry_missing_fields(selection, OUTPUT_FIELDS):
        raise ValidationError(
            f"Invalid selected output: missing required fields ({', '.join(OUTPUT_FIELDS)})",
            field="selectedOutput",
        )

    if payload.get("consentForTrainingData") and _missing(payload.get("consentTimestamp")):
        raise ValidationError(
            "Consent timestamp required when consent is given", field="consentTimestamp"
        )

    try:
        return ProcessDeclarationInput.model_validate(payload)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"Invalid field '{location}': {first['msg']}", field=location) from e
