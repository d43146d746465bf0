"""
JSON schema validation and retry logic for LLM responses.

Handles common LLM output issues: markdown wrapping, invalid JSON, missing fields.
Provides automatic repair and retry mechanisms for robust structured generation.
"""

from __future__ import annotations
import json
import re
from typing import Dict, Any, Optional, Type, TypeVar
from pydantic import BaseModel, ValidationError
import logging

from .runtime import LLMRuntime
from .exceptions import JSONValidationError

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseModel)


class JSONValidator:
    """Validates and repairs LLM JSON responses with automatic retries."""

    def __init__(self, max_retries: int = 3, repair_attempts: int = 2):
        self.max_retries = max_retries
        self.repair_attempts = repair_attempts

    def validate_and_parse(self, response: str, model_class: Type[T]) -> T:
        """
        Parse and validate LLM response into Pydantic model.

        Args:
            response: Raw LLM response
            model_class: Pydantic model class to parse into

        Returns:
            Parsed and validated model instance

        Raises:
            JSONValidationError: If parsing fails after all repairs
        """

        cleaned = self._clean_response(response)

        json_data = self._parse_json(cleaned)
        if json_data is None:
            for attempt in range(self.repair_attempts):
                logger.debug(f"JSON repair attempt {attempt + 1}/{self.repair_attempts}")
                repaired = self._repair_json(cleaned, attempt)
                json_data = self._parse_json(repaired)
                if json_data is not None:
                    break

        # A bare array of scenarios is accepted as the payload itself
        if isinstance(json_data, list):
            json_data = {"scenarios": json_data}

        if json_data is None:
            logger.error(f"Failed to parse JSON from cleaned response: {cleaned[:500]}...")
            raise JSONValidationError(response, 1, 1)

        try:
            return model_class.model_validate(json_data)
        except ValidationError as e:
            logger.warning(f"Pydantic validation failed: {e}")
            repaired_data = self._repair_validation_errors(json_data, e, model_class)
            if repaired_data:
                try:
                    return model_class.model_validate(repaired_data)
                except ValidationError:
                    pass

            raise JSONValidationError(response, 1, 1)

    def validate_with_retries(
        self,
        runtime: LLMRuntime,
        prompt: str,
        model_class: Type[T],
        **generation_kwargs
    ) -> T:
        """
        Generate and validate response with automatic retries.

        Raises:
            JSONValidationError: If all retries fail
        """

        last_error = None

        for attempt in range(1, self.max_retries + 1):
            try:
                schema_prompt = self._enhance_prompt_with_schema(prompt)
                response = runtime.generate(schema_prompt, **generation_kwargs)

                logger.debug(f"Raw LLM response (attempt {attempt}): {response}")

                result = self.validate_and_parse(response, model_class)

                if attempt > 1:
                    logger.info(f"Successfully parsed response on attempt {attempt}")

                return result

            except JSONValidationError as e:
                last_error = e
                logger.warning(f"Attempt {attempt}/{self.max_retries} failed: {e}")

                if attempt < self.max_retries:
                    prompt = self._enhance_prompt_for_retry(prompt, e.raw_response, attempt)

        raise JSONValidationError(
            last_error.raw_response if last_error else "",
            self.max_retries,
            self.max_retries
        )

    def _clean_response(self, response: str) -> str:
        """Clean common LLM formatting issues."""
        # Remove markdown code blocks
        response = re.sub(r'```json\s*\n?', '', response)
        response = re.sub(r'```\s*\n?', '', response)

        response = re.sub(r'^(Here\'s the.*?:|JSON:|Response:)\s*', '', response, flags=re.IGNORECASE)
        response = re.sub(r'\s*(That\'s the response|Hope this helps).*$', '', response, flags=re.IGNORECASE)

        return response.strip()

    def _parse_json(self, text: str) -> Optional[Any]:
        """Safely parse JSON, returning None on failure."""
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.debug(f"JSON parse error: {e}")
            return None

    def _repair_json(self, text: str, attempt: int) -> str:
        """Apply repair strategies based on attempt number."""

        if attempt == 0:
            # Strategy 1: the scenarios array is what we actually want
            scenarios_match = re.search(r'"scenarios"\s*:\s*\[.*\]', text, re.DOTALL)
            if scenarios_match:
                return "{" + scenarios_match.group(0) + "}"

            json_match = re.search(r'[\[{].*[\]}]', text, re.DOTALL)
            if json_match:
                return json_match.group(0)

        elif attempt == 1:
            # Strategy 2: fix common syntax slips
            text = re.sub(r'([{,]\s*)(\w+)(?=\s*:)', r'\1"\2"', text)
            text = re.sub(r',(\s*[}\]])', r'\1', text)
            text = text.replace("'", '"')

        return text

    def _repair_validation_errors(
        self,
        data: Any,
        error: ValidationError,
        model_class: Type[BaseModel]
    ) -> Optional[Dict[str, Any]]:
        """Attempt to repair common Pydantic validation errors on scenario entries."""

        if not isinstance(data, dict) or not isinstance(data.get("scenarios"), list):
            return None

        repaired = dict(data)
        scenarios = [dict(s) if isinstance(s, dict) else s for s in repaired["scenarios"]]

        for err in error.errors():
            loc = err.get('loc', ())
            if len(loc) < 3 or loc[0] != "scenarios" or not isinstance(loc[1], int):
                continue

            entry = scenarios[loc[1]]
            if not isinstance(entry, dict):
                continue

            field = loc[2]
            error_type = err.get('type', '')

            if field == "testType" and error_type in ('literal_error', 'missing'):
                entry["testType"] = _normalize_test_type(entry.get("testType") or entry.get("type"))
            elif field == "name" and error_type == 'missing':
                entry["name"] = entry.get("title") or "Unnamed scenario"
            elif field == "description" and error_type == 'string_type':
                entry["description"] = str(entry["description"])

        repaired["scenarios"] = scenarios
        return repaired

    def _enhance_prompt_with_schema(self, prompt: str) -> str:
        """Add minimal schema guidance to prompt."""
        # Local models do better with the example structure already in the prompt
        return f"""{prompt}

CRITICAL: Return ONLY valid JSON. No explanatory text, no markdown, no schema definitions."""

    def _enhance_prompt_for_retry(self, prompt: str, failed_response: str, attempt: int) -> str:
        """Enhance prompt based on previous failure."""

        retry_guidance = f"""

RETRY ATTEMPT {attempt}: The previous response was invalid JSON. Common issues to avoid:
- Wrapping JSON in markdown code blocks (```json)
- Including explanatory text before/after JSON
- Missing quotes around string values
- Trailing commas
- Single quotes instead of double quotes

Previous failed response (for reference):
{failed_response[:200]}...

Please return ONLY valid JSON matching the schema."""

        return prompt + retry_guidance


_TEST_TYPE_HINTS = (
    ("boundary", "boundary"),
    ("limit", "boundary"),
    ("edge", "edge_case"),
    ("error", "error_case"),
    ("fail", "error_case"),
    ("negative", "error_case"),
)


def _normalize_test_type(value: Any) -> str:
    text = str(value or "").lower()
    for hint, test_type in _TEST_TYPE_HINTS:
        if hint in text:
            return test_type
    return "happy_path"


# Convenience functions

def generate_with_validation(
    runtime: LLMRuntime,
    prompt: str,
    response_model: Type[T],
    max_retries: int = 3,
    **generation_kwargs
) -> T:
    """
    Generate and validate LLM response in one call.

    Combines generation and validation with automatic retries for robust
    JSON output.
    """
    validator = JSONValidator(max_retries=max_retries)
    return validator.validate_with_retries(
        runtime, prompt, response_model, **generation_kwargs
    )
