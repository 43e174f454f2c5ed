# Parameter validation for intents, before dispatch
from typing import Any, List, Optional
from dataclasses import dataclass, field

import structlog
from pydantic import ValidationError

from trackhabit.domain.models.intents import Intent, intent_adapter
from .action_registry import ActionRegistry, action_registry

logger = structlog.get_logger(__name__)


@dataclass
class ValidationResult:
    intent: Optional[Intent] = None
    errors: List[str] = field(default_factory=list)
    ignored: bool = False

    @property
    def is_valid(self) -> bool:
        return self.intent is not None


class ActionValidator:
    def __init__(self, registry: Optional[ActionRegistry] = None):
        self.registry = registry or action_registry

    def validate_intent(self, raw: Any) -> ValidationResult:
        if not isinstance(raw, dict):
            return ValidationResult(errors=[f"intent must be an object, got {type(raw).__name__}"])

        kind = raw.get("action")
        if not isinstance(kind, str) or not self.registry.is_known(kind):
            # Unrecognized kinds are ignored, not errors
            return ValidationResult(ignored=True)

        try:
            return ValidationResult(intent=intent_adapter.validate_python(raw))
        except ValidationError as e:
            return ValidationResult(errors=[
                f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}" for error in e.errors()
            ])

    def validate_batch(self, raw_intents: List[Any]) -> List[Intent]:
        """Validate each raw intent independently, keeping the valid ones in order"""

        intents = []
        for index, raw in enumerate(raw_intents):
            result = self.validate_intent(raw)
            if result.is_valid:
                intents.append(result.intent)
            elif result.ignored:
                logger.info("Ignoring unknown intent", index=index, action=raw.get("action"))
            else:
                logger.warning("Dropping invalid intent", index=index, errors=result.errors)
        return intents
