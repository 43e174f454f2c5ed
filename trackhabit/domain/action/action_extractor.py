"""
Pulls intents out of a model reply.

Structured tool calls win when the model returned any. Otherwise the reply
text is scanned: in ``fenced`` mode only a single ```json block counts; in
``lenient`` mode a bare object carrying an "action" key is accepted when no
fenced block exists. The reply text itself is never modified.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
import json
import re

import structlog

from trackhabit.domain.models.intents import Intent
from .action_validator import ActionValidator

logger = structlog.get_logger(__name__)

FENCED_JSON = re.compile(r"```json\s*(?P<body>[\s\S]*?)```", re.IGNORECASE)
_decoder = json.JSONDecoder()

FENCED = "fenced"
LENIENT = "lenient"
EXTRACTION_MODES = (FENCED, LENIENT)


@dataclass
class ExtractionResult:
    intents: List[Intent] = field(default_factory=list)
    source: Optional[str] = None
    payload: Optional[str] = None
    error: Optional[str] = None


def find_action_payload(reply: str, mode: str = FENCED) -> Optional[str]:
    """Locate the JSON text describing the intents, if any"""

    blocks = [match.group("body").strip() for match in FENCED_JSON.finditer(reply or "")]

    if mode == FENCED:
        if len(blocks) > 1:
            logger.warning("Ambiguous reply: several fenced JSON blocks", blocks=len(blocks))
            return None
        return blocks[0] if blocks else None

    if blocks:
        return blocks[0]

    return _first_bare_action_object(reply or "")


def _first_bare_action_object(reply: str) -> Optional[str]:
    """First JSON object in the text that carries an "action" key, decoded up to its own closing brace"""

    start = reply.find("{")
    while start != -1:
        try:
            value, end = _decoder.raw_decode(reply, start)
        except json.JSONDecodeError:
            value = None

        if isinstance(value, dict) and "action" in value:
            return reply[start:end]
        start = reply.find("{", start + 1)

    return None


def _tool_call_intents(tool_calls: List[Dict[str, Any]]) -> List[Any]:
    raw_intents = []
    for call in tool_calls:
        function = call.get("function") or {}
        name = function.get("name")
        arguments = function.get("arguments") or {}

        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError as e:
                logger.warning("Skipping tool call with malformed arguments", tool=name, error=str(e))
                continue

        if not isinstance(arguments, dict):
            logger.warning("Skipping tool call with non-object arguments", tool=name)
            continue

        raw_intents.append({**arguments, "action": name})
    return raw_intents


class ActionExtractor:
    """Turns a model reply into validated intents"""

    def __init__(self, mode: str = FENCED, validator: Optional[ActionValidator] = None):
        if mode not in EXTRACTION_MODES:
            raise ValueError(f"Unknown extraction mode: {mode}")
        self.mode = mode
        self.validator = validator or ActionValidator()

    def extract(self, reply: str, tool_calls: Optional[List[Dict[str, Any]]] = None) -> ExtractionResult:
        if tool_calls:
            raw_intents = _tool_call_intents(tool_calls)
            return ExtractionResult(
                intents=self.validator.validate_batch(raw_intents),
                source="tool_calls"
            )

        payload = find_action_payload(reply, self.mode)
        if payload is None:
            return ExtractionResult()

        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError as e:
            # Reply is kept as-is, only the intents are dropped
            logger.info("Action block is not valid JSON", error=str(e))
            return ExtractionResult(source=self.mode, payload=payload, error=str(e))

        raw_intents = parsed if isinstance(parsed, list) else [parsed]
        return ExtractionResult(
            intents=self.validator.validate_batch(raw_intents),
            source=self.mode,
            payload=payload
        )
