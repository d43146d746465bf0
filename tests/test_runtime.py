"""Test LLM runtime helpers that do not need a live server."""

import pytest
import requests

from workflow_designer.exceptions import ConfigurationError, LLMRuntimeError
from workflow_designer.runtime import (
    MockLLMRuntime,
    OpenAICompatibleRuntime,
    RuntimeFactory,
    create_local_runtime,
    create_openai_runtime,
)


class TestMockLLMRuntime:

    def test_keyword_match(self):
        runtime = MockLLMRuntime({"payment": '{"scenarios": []}'})
        assert runtime.generate("Check the PAYMENT task") == '{"scenarios": []}'
        assert runtime.call_count == 1

    def test_error(self):
        runtime = MockLLMRuntime({}, error=LLMRuntimeError("boom"))
        with pytest.raises(LLMRuntimeError):
            runtime.generate("anything")


class TestFactories:

    def test_local_runtime(self):
        runtime = create_local_runtime("http://localhost:9999/v1", model="qwen")
        info = runtime.get_model_info()

        assert info["base_url"] == "http://localhost:9999/v1"
        assert info["model"] == "qwen"

    def test_openai_requires_key(self):
        with pytest.raises(ConfigurationError):
            create_openai_runtime("")

    def test_unavailable_local_server(self, monkeypatch):
        def refuse(*args, **kwargs):
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(requests, "get", refuse)
        runtime = OpenAICompatibleRuntime(base_url="http://localhost:9999/v1")

        assert runtime.is_available() is False

    def test_factory_without_runtimes(self, monkeypatch):
        monkeypatch.setattr(OpenAICompatibleRuntime, "is_available", lambda self: False)
        factory = RuntimeFactory("http://localhost:9999/v1")
        factory._runtimes.pop("mlx", None)

        with pytest.raises(LLMRuntimeError, match="No LLM runtime available"):
            factory.create_runtime()

    def test_registered_runtime_preferred(self):
        factory = RuntimeFactory()
        factory.register_runtime("mock", MockLLMRuntime, responses={})

        assert isinstance(factory.create_runtime(preferred="mock"), MockLLMRuntime)
