"""
Prompt builder for LLM requests.

Responsible for:
- Loading and rendering Jinja2 templates (classify / extract / combined)
- Cleaning and truncating the email body per prompt budget
- Attaching the matching JSON Schema as Ollama's format constraint
"""

import json
from pathlib import Path
from typing import Any

import structlog
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from jobmail_pipeline.llm.text_utils import clean_body_for_prompt
from jobmail_pipeline.models.enums import ApplicationStatus
from jobmail_pipeline.models.input_models import EmailEvidence
from jobmail_pipeline.models.llm_models import LLMGenerationRequest

logger = structlog.get_logger(__name__)

PROMPT_KINDS = ("classify", "extract", "combined")


class PromptBuilder:
    """
    Build LLMGenerationRequests for the LLM provider tiers.

    One template + schema pair per prompt kind:
    - classify: stage 1 of the two-stage tier, {"is_job": bool}
    - extract: stage 2 of the two-stage tier, {"company", "position", "status"}
    - combined: the single-stage tier, everything in one reply
    """

    def __init__(
        self,
        templates_dir: Path,
        schemas_dir: Path,
        classify_body_chars: int = 800,
        extract_body_chars: int = 4000,
        temperature: float = 0.0,
        classify_max_tokens: int = 32,
        extract_max_tokens: int = 256,
    ):
        """
        Initialize prompt builder.

        Args:
            templates_dir: Directory containing <kind>.j2 templates
            schemas_dir: Directory containing <kind>.json schemas
            classify_body_chars: Body budget for the classify prompt
            extract_body_chars: Body budget for extract and combined prompts
            temperature: Sampling temperature for every request
            classify_max_tokens: Generation cap for the classify prompt
            extract_max_tokens: Generation cap for extract and combined prompts
        """
        self.templates_dir = Path(templates_dir)
        self.schemas_dir = Path(schemas_dir)
        self.classify_body_chars = classify_body_chars
        self.extract_body_chars = extract_body_chars
        self.temperature = temperature
        self.classify_max_tokens = classify_max_tokens
        self.extract_max_tokens = extract_max_tokens

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
            autoescape=False,  # Prompts, not HTML
        )

        self.templates = {kind: self.jinja_env.get_template(f"{kind}.j2") for kind in PROMPT_KINDS}
        self.schemas: dict[str, dict[str, Any]] = {}
        for kind in PROMPT_KINDS:
            schema_path = self.schemas_dir / f"{kind}.json"
            with open(schema_path, "r", encoding="utf-8") as f:
                self.schemas[kind] = json.load(f)

        logger.info(
            "PromptBuilder initialized",
            templates_dir=str(self.templates_dir),
            schemas_dir=str(self.schemas_dir),
            classify_body_chars=classify_body_chars,
            extract_body_chars=extract_body_chars,
        )

    def render(self, kind: str, evidence: EmailEvidence) -> str:
        """
        Render the prompt text for one email.

        Args:
            kind: One of PROMPT_KINDS
            evidence: Subject, body and sender

        Returns:
            Rendered prompt
        """
        body_chars = self.classify_body_chars if kind == "classify" else self.extract_body_chars
        return self.templates[kind].render(
            subject=evidence.subject.strip(),
            from_address=evidence.from_address.strip(),
            body=clean_body_for_prompt(evidence.body_plaintext, body_chars),
            statuses=[status.value for status in ApplicationStatus],
        ).strip()

    def build_request(self, kind: str, evidence: EmailEvidence, model: str) -> LLMGenerationRequest:
        """
        Build a complete generation request with its format schema.

        Args:
            kind: One of PROMPT_KINDS
            evidence: Subject, body and sender
            model: Model name to address

        Returns:
            LLMGenerationRequest ready for BaseLLMClient.generate()
        """
        if kind not in self.templates:
            raise ValueError(f"Unknown prompt kind: {kind}")

        max_tokens = self.classify_max_tokens if kind == "classify" else self.extract_max_tokens
        return LLMGenerationRequest(
            prompt=self.render(kind, evidence),
            model=model,
            temperature=self.temperature,
            max_tokens=max_tokens,
            format_schema=self.schemas[kind],
        )
