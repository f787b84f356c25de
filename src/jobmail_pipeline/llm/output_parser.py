"""
Structured-output parsing for LLM replies.

Three hard-fail steps, in order:
1. JSON parse (tolerates a surrounding ```json fence)
2. JSON Schema validation (Draft 7)
3. pydantic model validation

Any failure raises LLMSchemaViolationError with the failing stage in
`details["stage"]`.
"""

import json
import re
from typing import Any, TypeVar

import structlog
from jsonschema import Draft7Validator
from pydantic import BaseModel, ValidationError

from jobmail_pipeline.llm.exceptions import LLMSchemaViolationError

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(?P<body>.*?)\s*```$", re.DOTALL)


class ModelOutputParser:
    """Parse and validate one kind of structured reply."""

    def __init__(self, schema: dict[str, Any]):
        Draft7Validator.check_schema(schema)
        self.schema = schema
        self._validator = Draft7Validator(schema)

    def parse_json(self, content: str) -> dict[str, Any]:
        """
        Parse raw reply text into a dict.

        Raises:
            LLMSchemaViolationError: Empty, unparseable, or not a JSON object
        """
        text = (content or "").strip()
        if not text:
            raise LLMSchemaViolationError(
                "LLM reply is empty", details={"stage": "json_parse"}
            )

        fenced = _CODE_FENCE.match(text)
        if fenced:
            text = fenced.group("body")

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            raise LLMSchemaViolationError(
                f"LLM reply is not valid JSON: {e.msg}",
                details={
                    "stage": "json_parse",
                    "error": f"{e.msg} at line {e.lineno} col {e.colno}",
                    "raw_preview": text[:200],
                },
            ) from e

        if not isinstance(parsed, dict):
            raise LLMSchemaViolationError(
                f"LLM reply is not a JSON object (got {type(parsed).__name__})",
                details={"stage": "json_parse"},
            )
        return parsed

    def validate_schema(self, data: dict[str, Any]) -> None:
        """
        Validate against the JSON Schema, collecting every violation.

        Raises:
            LLMSchemaViolationError: One or more violations
        """
        errors = sorted(self._validator.iter_errors(data), key=lambda e: list(e.path))
        if errors:
            violations = [
                f"{'/'.join(str(p) for p in error.path) or '<root>'}: {error.message}"
                for error in errors
            ]
            raise LLMSchemaViolationError(
                f"LLM reply violates schema {self.schema.get('title', '')}",
                details={"stage": "schema", "violations": violations},
            )

    def parse(self, content: str, model_cls: type[ModelT]) -> ModelT:
        """
        Run all three steps and return the validated model.

        Args:
            content: Raw reply text
            model_cls: pydantic model to build

        Returns:
            Instance of model_cls

        Raises:
            LLMSchemaViolationError: At the first failing step
        """
        data = self.parse_json(content)
        self.validate_schema(data)
        try:
            return model_cls.model_validate(data)
        except ValidationError as e:
            raise LLMSchemaViolationError(
                f"LLM reply rejected by {model_cls.__name__}",
                details={"stage": "model", "errors": e.errors(include_url=False)},
            ) from e
