from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from .config import Settings
from .errors import ExternalToolError
from .process import run_process

logger = logging.getLogger(__name__)


class TextGenerator:
    """Produces a free-text completion for a prompt within a timeout."""

    model: str = "unknown"

    async def generate(self, prompt: str) -> str:
        raise NotImplementedError


class OllamaGenerator(TextGenerator):
    def __init__(self, endpoint: str, model: str, timeout: float = 60) -> None:
        self.endpoint = endpoint
        self.model = model
        self.timeout = timeout

    async def generate(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": 0.7, "top_p": 0.9, "num_predict": 1000},
        }
        logger.debug("POST %s (%d-character prompt)", self.endpoint, len(prompt))
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.endpoint, json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.ConnectError as exc:
            raise ExternalToolError("LLM service not available. Make sure Ollama is running.") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ExternalToolError(f"LLM API call failed: {exc}") from exc

        text = data.get("response") if isinstance(data, dict) else None
        if not text:
            raise ExternalToolError("Invalid response from LLM")
        return text


class LlamaCppGenerator(TextGenerator):
    def __init__(self, endpoint: str, model: str = "llama.cpp", timeout: float = 60) -> None:
        self.endpoint = endpoint
        self.model = model
        self.timeout = timeout

    async def generate(self, prompt: str) -> str:
        payload = {
            "prompt": prompt,
            "n_predict": 512,
            "temperature": 0.7,
            "top_p": 0.9,
            "stop": ["</s>", "Human:", "Assistant:"],
        }
        logger.debug("POST %s (%d-character prompt)", self.endpoint, len(prompt))
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.endpoint, json=payload)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ExternalToolError(f"llama.cpp API call failed: {exc}") from exc

        text = data.get("content") if isinstance(data, dict) else None
        if not text:
            raise ExternalToolError("Invalid response from llama.cpp")
        return text


class GPT4AllGenerator(TextGenerator):
    def __init__(self, executable: str, model: str, timeout: float = 120) -> None:
        self.executable = executable
        self.model = model
        self.timeout = timeout

    async def generate(self, prompt: str) -> str:
        args: List[str] = [self.executable, "--model", self.model, "--prompt", prompt]
        return await run_process(args, self.timeout, "GPT4All")


def build_generator(settings: Settings, backend: Optional[str] = None) -> TextGenerator:
    backend = backend or settings.LLM_BACKEND
    if backend == "ollama":
        return OllamaGenerator(settings.LLM_ENDPOINT, settings.LLM_MODEL, settings.LLM_TIMEOUT_SECONDS)
    if backend == "llamacpp":
        return LlamaCppGenerator(settings.LLAMACPP_ENDPOINT, settings.LLM_MODEL, settings.LLM_TIMEOUT_SECONDS)
    if backend == "gpt4all":
        return GPT4AllGenerator(settings.GPT4ALL_PATH, settings.LLM_MODEL, settings.GPT4ALL_TIMEOUT_SECONDS)
    raise ValueError(f"Unknown LLM backend: {backend}")
