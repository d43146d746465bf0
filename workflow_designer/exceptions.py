"""Custom exceptions for the workflow designer."""

from typing import List


class DesignerError(Exception):
    """Base exception for workflow designer errors."""
    pass


class GraphValidationError(DesignerError):
    """
    Raised when a node/edge graph violates its structural contract.

    Attributes:
        violated_rules: Rule names that failed (e.g., ['duplicate_reference', 'sequence_gap'])
        offending_ids: Node or edge IDs causing the failure
        details: Human-readable explanation of what went wrong
    """

    def __init__(self, violated_rules: List[str], offending_ids: List[str], details: str):
        self.violated_rules = violated_rules
        self.offending_ids = offending_ids
        self.details = details
        super().__init__(f"Graph validation failed: {', '.join(violated_rules)}. {details}")


class TaskDefinitionError(DesignerError):
    """Raised when a workflow definition cannot be interpreted as a task tree."""
    pass


class JSONValidationError(DesignerError):
    """Raised when LLM returns invalid JSON after maximum retries."""

    def __init__(self, raw_response: str, attempts: int, max_retries: int):
        self.raw_response = raw_response
        self.attempts = attempts
        self.max_retries = max_retries
        super().__init__(f"Failed to parse valid JSON after {attempts}/{max_retries} attempts")


class LLMRuntimeError(DesignerError):
    """Raised when LLM runtime encounters an error."""
    pass


class ConfigurationError(DesignerError):
    """Raised when configuration is invalid or missing."""
    pass
