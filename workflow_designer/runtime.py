"""
Pluggable LLM runtime abstraction for scenario generation.

Provides a unified interface for a local mlx-lm server, in-process MLX and
hosted OpenAI-compatible APIs. Handles auto-detection and fallback.
"""

from __future__ import annotations
from typing import Optional, Dict, Any, Protocol
import importlib.util
import requests
from openai import OpenAI
import logging
from .exceptions import LLMRuntimeError, ConfigurationError

logger = logging.getLogger(__name__)

HAS_MLX = importlib.util.find_spec("mlx_lm") is not None

SYSTEM_PROMPT = (
    "You are a QA engineer generating test scenarios for orchestration workflow tasks. "
    "Return JSON only matching the provided structure. "
    "No markdown formatting, no explanations, just valid JSON."
)


class LLMRuntime(Protocol):
    """Protocol for all LLM runtime implementations."""

    def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        **kwargs
    ) -> str:
        """Generate text response from prompt."""
        ...

    def is_available(self) -> bool:
        """Check if this runtime is currently available."""
        ...

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the current model."""
        ...


class OpenAICompatibleRuntime:
    """
    Unified runtime for OpenAI-compatible APIs.
    Works with a local mlx-lm server, OpenAI, and other compatible services.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "no-key",
        model: str = "gpt-4o-mini",
        name: str = "openai-compatible"
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.model = model
        self.name = name
        self.client = OpenAI(base_url=base_url, api_key=api_key)

    def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        **kwargs
    ) -> str:
        """Generate response using OpenAI-compatible API."""
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt}
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs
            )

            return (response.choices[0].message.content or "").strip()

        except Exception as e:
            raise LLMRuntimeError(f"Failed to generate response from {self.name}: {e}") from e

    def is_available(self) -> bool:
        """Check if the service is reachable."""
        try:
            health_url = f"{self.base_url.rstrip('/').removesuffix('/v1')}/health"
            response = requests.get(health_url, timeout=5)
            if response.status_code == 200:
                return True
        except requests.RequestException:
            pass

        try:
            models_url = f"{self.base_url.rstrip('/')}/models"
            response = requests.get(
                models_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=5
            )
            return response.status_code == 200
        except requests.RequestException:
            return False

    def get_model_info(self) -> Dict[str, Any]:
        """Get model information."""
        return {
            "name": self.name,
            "model": self.model,
            "base_url": self.base_url,
            "type": "openai-compatible"
        }


class RuntimeFactory:
    """Factory for creating and managing LLM runtimes with auto-detection."""

    DEFAULT_LOCAL_URL = "http://localhost:8080/v1"

    def __init__(self, local_url: Optional[str] = None, local_model: str = "local-model"):
        self._runtimes = {}
        self._setup_default_runtimes(local_url or self.DEFAULT_LOCAL_URL, local_model)

    def _setup_default_runtimes(self, local_url: str, local_model: str):
        """Setup default runtime configurations."""
        self._runtimes["local"] = {
            "class": OpenAICompatibleRuntime,
            "kwargs": {
                "base_url": local_url,
                "api_key": "no-key",
                "model": local_model,
                "name": "mlx-lm-server"
            }
        }

        if HAS_MLX:
            from .simple_mlx_runtime import SimpleMLXRuntime, DEFAULT_MLX_MODEL
            self._runtimes["mlx"] = {
                "class": SimpleMLXRuntime,
                "kwargs": {
                    "model_path": DEFAULT_MLX_MODEL
                }
            }

        # OpenAI (requires API key)
        self._runtimes["openai"] = {
            "class": OpenAICompatibleRuntime,
            "kwargs": {
                "base_url": "https://api.openai.com/v1",
                "model": "gpt-4o-mini",
                "name": "openai"
            }
        }

    def register_runtime(self, name: str, runtime_class, **kwargs):
        """Register a custom runtime."""
        self._runtimes[name] = {
            "class": runtime_class,
            "kwargs": kwargs
        }

    def create_runtime(
        self,
        preferred: Optional[str] = None,
        api_key: Optional[str] = None,
        auto_fallback: bool = True
    ) -> LLMRuntime:
        """
        Create the best available runtime.

        Args:
            preferred: Preferred runtime name ("local", "mlx", "openai", etc.)
            api_key: API key for hosted services
            auto_fallback: Whether to fallback to available runtimes
        """

        if api_key:
            self._runtimes["openai"]["kwargs"]["api_key"] = api_key

        if preferred and preferred in self._runtimes:
            runtime = self._create_runtime_instance(preferred)
            if runtime and runtime.is_available():
                logger.info(f"Using preferred runtime: {preferred}")
                return runtime
            elif not auto_fallback:
                raise LLMRuntimeError(f"Preferred runtime '{preferred}' is not available")

        if auto_fallback:
            for name in self._runtimes:
                if name == "openai" and not api_key:
                    continue  # hosted runtime needs a key
                runtime = self._create_runtime_instance(name)
                if runtime and runtime.is_available():
                    logger.info(f"Auto-detected runtime: {name}")
                    return runtime

        raise LLMRuntimeError(
            "No LLM runtime available. Start an OpenAI-compatible server locally or provide an API key."
        )

    def _create_runtime_instance(self, name: str) -> Optional[LLMRuntime]:
        """Create a runtime instance by name."""
        if name not in self._runtimes:
            return None

        config = self._runtimes[name]
        try:
            return config["class"](**config["kwargs"])
        except Exception as e:
            logger.warning(f"Failed to create runtime '{name}': {e}")
            return None


class MockLLMRuntime:
    """Mock runtime for testing - returns predefined responses."""

    def __init__(self, responses: Dict[str, str], error: Optional[Exception] = None):
        """
        Args:
            responses: Map from prompt keywords to mock responses
            error: Raised from every generate() call when set
        """
        self.responses = responses
        self.error = error
        self.call_count = 0
        self.last_prompt = ""

    def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        **kwargs
    ) -> str:
        """Return mock response based on prompt content."""
        self.call_count += 1
        self.last_prompt = prompt

        if self.error is not None:
            raise self.error

        for keyword, response in self.responses.items():
            if keyword.lower() in prompt.lower():
                return response

        return '{"scenarios": []}'

    def is_available(self) -> bool:
        return True

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "name": "mock",
            "type": "mock",
            "responses_count": len(self.responses)
        }


# Convenience functions for common use cases

def create_local_runtime(url: str = "http://localhost:8080/v1", model: str = "local-model") -> LLMRuntime:
    """Create a local mlx-lm server runtime."""
    return OpenAICompatibleRuntime(
        base_url=url,
        api_key="no-key",
        model=model,
        name="mlx-lm-server"
    )


def create_openai_runtime(api_key: str, model: str = "gpt-4o-mini") -> LLMRuntime:
    """Create an OpenAI runtime."""
    if not api_key or api_key == "no-key":
        raise ConfigurationError("OpenAI API key is required")

    return OpenAICompatibleRuntime(
        base_url="https://api.openai.com/v1",
        api_key=api_key,
        model=model,
        name="openai"
    )


def auto_detect_runtime(
    local_url: Optional[str] = None,
    api_key: Optional[str] = None,
    local_model: str = "local-model"
) -> LLMRuntime:
    """Auto-detect and create the best available runtime."""
    factory = RuntimeFactory(local_url, local_model)
    return factory.create_runtime(api_key=api_key, auto_fallback=True)
