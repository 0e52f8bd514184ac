"""LLM-powered structured extraction of resumes and job descriptions."""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Dict, List, Optional, Tuple, Union

from anthropic import Anthropic, AnthropicError
from pydantic import ValidationError

from app.core.config import settings
from app.core.logging_utils import log_llm_cost, sanitize_for_logging
from app.features.documents.models import ParseKind
from app.features.documents.profiles import JobDescriptionProfile, ResumeProfile
from app.shared.errors import ParseFailed

logger = logging.getLogger("Recruit.Intelligence.LLM")

MAX_INPUT_CHARS = 15000

RESUME_SYSTEM_PROMPT = (
    "You are a precise resume parser that extracts structured information. Only include fields "
    "that are explicitly present in the resume. Use brief descriptions. Format dates as YYYY-MM. "
    "IMPORTANT: Only include certifications if you can extract a valid issue date (YYYY-MM format). "
    "If a certification has no clear issue date, omit it entirely. Respond with JSON only."
)

JD_SYSTEM_PROMPT = (
    "You are a precise job description parser that extracts structured information. Only include "
    "fields that are explicitly present in the JD. Infer work type from location/description "
    "(remote work mentions = remote, office location mentioned = wfo, hybrid mentioned = wfh). "
    "For experience, extract years (e.g., \"3-5 years\" = experienceMin: 3, experienceMax: 5). "
    "Respond with JSON only."
)

RESUME_SCHEMA = """{
  "skills": ["skill1", "skill2"],
  "experience": [{
    "company": "Required: Company name",
    "title": "Required: Job title",
    "startDate": "Required: YYYY-MM",
    "endDate": "YYYY-MM or present",
    "description": "Required: Brief description"
  }],
  "education": [{
    "institution": "Required: School name",
    "degree": "Required: Degree type",
    "field": "Required: Field of study",
    "startDate": "YYYY-MM",
    "endDate": "Required: YYYY-MM"
  }],
  "certifications": [{
    "name": "Required: Certification name",
    "issuer": "Required: Issuing organization",
    "issueDate": "Required: YYYY-MM. If no date is available, omit this certification entirely",
    "expiryDate": "YYYY-MM if applicable"
  }],
  "projects": [{
    "name": "Required: Project name",
    "description": "Required: Brief description",
    "technologies": ["tech1", "tech2"],
    "githubUrl": "Optional: Full URL",
    "role": "Optional: Your role",
    "startDate": "Required: YYYY-MM",
    "endDate": "YYYY-MM or present"
  }],
  "summary": "brief professional summary",
  "location": "city, country",
  "phoneNumber": "numbers only",
  "linkedinUrl": "full url",
  "portfolioUrl": "full url"
}"""

JD_SCHEMA = """{
  "title": "Required: Job title",
  "description": "Required: Full job description",
  "location": "City, State/Country (optional)",
  "type": "full-time | part-time | contract | internship (optional)",
  "workType": "wfo | wfh | remote (optional, infer from location/description)",
  "salaryRange": {"min": 0, "max": 0, "currency": "INR | USD | EUR | GBP | CAD | AUD"},
  "requirements": {
    "skills": ["skill1", "skill2"],
    "experienceMin": 0,
    "experienceMax": 0,
    "education": ["degree1", "degree2"],
    "certifications": ["cert1", "cert2"]
  },
  "benefits": ["benefit1", "benefit2"],
  "numberOfOpenings": 1,
  "applicationDeadline": "YYYY-MM-DD (optional)",
  "duration": "e.g., 6 months, 1 year (only for contract/internship)"
}"""

StructuredRecord = Union[ResumeProfile, JobDescriptionProfile]


class StructuredProfileParser:
    """Turn extracted document text into a ResumeProfile or JobDescriptionProfile."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[Anthropic] = None,
    ) -> None:
        self._client = client
        self._api_key = api_key or settings.ANTHROPIC_API_KEY

        primary_model = model or settings.CLAUDE_MODEL_PRIMARY
        fallback_models: List[str] = []
        for candidate in settings.CLAUDE_MODEL_OPTIONS:
            if candidate and candidate not in fallback_models and candidate != primary_model:
                fallback_models.append(candidate)

        self.model_candidates = [primary_model] + fallback_models

        logger.info(
            "Structured profile parser initialized with models: %s",
            ", ".join(self.model_candidates),
        )

    @property
    def client(self) -> Anthropic:
        """Anthropic client, created on first parse."""
        if self._client is None:
            self._client = Anthropic(api_key=self._api_key)
        return self._client

    def parse(
        self,
        text: str,
        kind: ParseKind,
        document_id: Optional[str] = None,
    ) -> StructuredRecord:
        """
        Parse ``text`` into the record type for ``kind``.

        Models are tried in order; the first one returning JSON that
        normalises into a valid record wins.

        Raises:
            ParseFailed: Empty input, or no model produced a valid record
        """
        if not text or not text.strip():
            raise ParseFailed("There is no text to parse. Please upload a readable document.")

        system_prompt, prompt = self._build_prompt(text, kind)
        last_error: Optional[Exception] = None

        for model_name in self.model_candidates:
            result_text = ""
            try:
                result_text = self._invoke_model(system_prompt, prompt, model_name, kind, document_id)
                data = json.loads(result_text)
                if not isinstance(data, dict) or not data:
                    raise ValueError("Model returned an empty or non-object JSON payload")
                record = self._to_record(data, kind)
                logger.info("Parsed %s with model %s", kind.value, model_name)
                return record

            except json.JSONDecodeError as exc:
                logger.error(
                    "Model %s returned unparsable JSON: %s | snippet=%s",
                    model_name,
                    exc,
                    sanitize_for_logging(result_text, max_len=300),
                )
                last_error = exc
            except ValidationError as exc:
                logger.error(
                    "Model %s output failed %s schema validation: %s",
                    model_name,
                    kind.value,
                    exc.error_count(),
                )
                last_error = exc
            except (AnthropicError, ValueError) as exc:
                logger.warning("Model %s failed: %s", model_name, exc)
                last_error = exc

        logger.error("All Claude models failed to parse %s: %s", kind.value, last_error)
        raise ParseFailed(
            f"The {kind.value.replace('-', ' ')} could not be parsed. Please upload a clearer document."
        ) from last_error

    @staticmethod
    def _to_record(data: Dict[str, Any], kind: ParseKind) -> StructuredRecord:
        if kind == ParseKind.RESUME:
            return ResumeProfile.from_raw(data)
        return JobDescriptionProfile.from_raw(data)

    @staticmethod
    def _build_prompt(text: str, kind: ParseKind) -> Tuple[str, str]:
        body = text[:MAX_INPUT_CHARS]
        if kind == ParseKind.RESUME:
            prompt = (
                "Extract the following information from this resume. Format as JSON. Only include "
                "fields that are present in the resume. For all dates, use YYYY-MM format "
                "(e.g., \"2023-09\") or \"present\" for current positions:\n"
                f"{RESUME_SCHEMA}\n\nResume text:\n{body}"
            )
            return RESUME_SYSTEM_PROMPT, prompt

        prompt = (
            "Extract the following information from this job description. Format as JSON. "
            "Only include fields that are present in the JD:\n\n"
            f"{JD_SCHEMA}\n\nJob Description:\n{body}"
        )
        return JD_SYSTEM_PROMPT, prompt

    def _invoke_model(
        self,
        system_prompt: str,
        prompt: str,
        model_name: str,
        kind: ParseKind,
        document_id: Optional[str],
    ) -> str:
        """Send the prompt to Claude and return raw text output."""

        started = time.monotonic()
        response = self.client.messages.create(
            model=model_name,
            max_tokens=4000,
            temperature=0.1,
            system=system_prompt,
            messages=[{"role": "user", "content": prompt}],
        )

        usage = getattr(response, "usage", None)
        if usage is not None:
            log_llm_cost(
                model=model_name,
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                duration_ms=int((time.monotonic() - started) * 1000),
                endpoint=kind.value,
                document_id=document_id,
            )

        if not response.content:
            raise ValueError(f"Model {model_name} returned empty content")

        block = response.content[0]
        result_text = block.text if hasattr(block, "text") else str(block)
        result_text = result_text.strip()

        if result_text.startswith("```"):
            result_text = re.sub(r"^```(?:json)?\n?", "", result_text)
            result_text = re.sub(r"\n?```$", "", result_text)

        return result_text
