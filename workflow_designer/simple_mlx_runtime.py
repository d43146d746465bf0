"""
In-process MLX runtime for scenario generation.

Loads an mlx-lm model once and generates locally without an HTTP server.
Only usable on Apple silicon with the ``mlx`` extra installed.
"""

from typing import Dict, Any
import logging
from .exceptions import LLMRuntimeError
from .runtime import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

DEFAULT_MLX_MODEL = "mlx-community/Meta-Llama-3.1-8B-Instruct-3bit"


class SimpleMLXRuntime:
    """
    Runtime that calls mlx-lm directly in-process.

    The scenario prompt is wrapped in the tokenizer's chat template together
    with the same system prompt the HTTP runtimes send.
    """

    def __init__(self, model_path: str = DEFAULT_MLX_MODEL):
        self.model_path = model_path
        self.name = "simple-mlx"
        self.model = None
        self.tokenizer = None
        self._load_model()

    def _load_model(self):
        """Load the model once on initialization."""
        try:
            from mlx_lm import load
            logger.info(f"Loading MLX model: {self.model_path}")
            self.model, self.tokenizer = load(self.model_path)
            logger.info("MLX model loaded successfully")
        except Exception as e:
            logger.error(f"Failed to load MLX model: {e}")
            raise LLMRuntimeError(f"Could not load MLX model: {e}") from e

    def _format_prompt(self, prompt: str) -> str:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        if getattr(self.tokenizer, "chat_template", None):
            return self.tokenizer.apply_chat_template(messages, tokenize=False, add_generation_prompt=True)
        return f"{SYSTEM_PROMPT}\n\n{prompt}"

    def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        top_p: float = 1.0,
        **kwargs
    ) -> str:
        """Generate response using MLX directly."""

        if not self.model or not self.tokenizer:
            raise LLMRuntimeError("MLX model not loaded")

        try:
            from mlx_lm import generate
            from mlx_lm.sample_utils import make_sampler

            sampler = make_sampler(temp=temperature, top_p=top_p)

            return generate(
                model=self.model,
                tokenizer=self.tokenizer,
                prompt=self._format_prompt(prompt),
                sampler=sampler,
                max_tokens=max_tokens
            )

        except Exception as e:
            logger.error(f"MLX generation failed: {e}")
            raise LLMRuntimeError(f"MLX generation failed: {e}") from e

    def is_available(self) -> bool:
        return self.model is not None and self.tokenizer is not None

    def get_model_info(self) -> Dict[str, Any]:
        """Get model information."""
        return {
            "name": self.name,
            "type": "simple-mlx",
            "model_path": self.model_path,
            "loaded": self.model is not None
        }
