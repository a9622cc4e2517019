"""Command parser orchestration: rules-based classification plus schema validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from pydantic import ValidationError

from src.intent.extractors import ExtractedFields
from src.intent.rules_parser import classify
from src.intent.schema import Clarification, StructuredCommand, command_from_obj

logger = logging.getLogger(__name__)


class CommandSchemaError(ValueError):
    """Raised when the classifier produced a command object that fails schema validation."""


@dataclass(frozen=True)
class ParseResult:
    """Validated command (or a clarification) plus the intermediate parsing artifacts."""

    command: StructuredCommand | None
    clarification: Clarification | None
    extracted: ExtractedFields
    payload: dict[str, Any] | None


def parse_command(text: str, reference_date: date) -> ParseResult:
    """Parse a transcript into a validated structured command.

    Raises:
        CommandSchemaError: If the raw command object does not match the schema.
    """

    classification = classify(text, reference_date)
    if classification.payload is None:
        return ParseResult(
            command=None,
            clarification=classification.clarification,
            extracted=classification.extracted,
            payload=None,
        )

    try:
        command = command_from_obj(classification.payload)
    except ValidationError as exc:
        logger.info("schema rejected payload intent=%s", classification.payload.get("intent"))
        raise CommandSchemaError(str(exc)) from exc

    return ParseResult(
        command=command,
        clarification=None,
        extracted=classification.extracted,
        payload=classification.payload,
    )
