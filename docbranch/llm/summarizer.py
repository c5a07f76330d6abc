"""Per-file Markdown summarization with provider fallback."""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader

from ..config import DocBranchConfig, ProviderConfig
from ..logging import get_logger
from .runner import GEMINI_BASE_URL, OPENAI_BASE_URL, LLMRunner

MAX_INPUT_CHARS = 50_000

# name -> (base url, model, api key variable)
KNOWN_PROVIDERS: Dict[str, Tuple[str, str, str]] = {
    "openai": (OPENAI_BASE_URL, "gpt-4o-mini", "OPENAI_API_KEY"),
    "gemini": (GEMINI_BASE_URL, "gemini-2.0-flash", "GEMINI_API_KEY"),
}

_LANGUAGE_HINTS = {
    ".js": "javascript",
    ".jsx": "jsx",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".py": "python",
    ".java": "java",
    ".c": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".cxx": "cpp",
    ".go": "go",
    ".rs": "rust",
    ".php": "php",
    ".rb": "ruby",
    ".cs": "csharp",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".vue": "vue",
    ".svelte": "svelte",
}


class Provider(Protocol):
    name: str

    def run(self, prompt: str, *, system: str | None = None) -> str: ...


class Summarizer:
    """Renders the documentation prompt and tries providers in priority order."""

    SYSTEM_PROMPT = (
        "You are a technical documentation expert specializing in code documentation. "
        "Generate clear, comprehensive documentation for code files that helps developers "
        "understand and use the code effectively."
    )

    def __init__(
        self,
        providers: Sequence[Provider],
        *,
        max_chars: int = MAX_INPUT_CHARS,
        templates_dir: Path | None = None,
    ) -> None:
        self.providers: List[Provider] = list(providers)
        self.max_chars = max_chars
        self.logger = get_logger("summarizer")
        loader = FileSystemLoader(str(templates_dir or Path(__file__).with_name("templates")))
        self._env = Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)

    def rejection_reason(self, content: str) -> Optional[str]:
        """Explain why ``content`` must not be sent to a provider, if it must not."""
        if not content.strip():
            return "empty file"
        if len(content) > self.max_chars:
            return f"too large: {len(content)} chars"
        return None

    def build_prompt(self, file_path: str, content: str) -> str:
        source = PurePosixPath(file_path.replace("\\", "/"))
        template = self._env.get_template("file_doc.j2")
        return template.render(
            file_path=source.as_posix(),
            file_name=source.name,
            language=_LANGUAGE_HINTS.get(source.suffix.lower(), ""),
            content=content,
        )

    def summarize(self, file_path: str, content: str) -> Optional[str]:
        """Return generated Markdown, or None when the input is rejected or every provider failed."""
        reason = self.rejection_reason(content)
        if reason:
            self.logger.warning("Skipping %s (%s)", file_path, reason)
            return None
        if not self.providers:
            self.logger.error("No summarization provider configured")
            return None
        prompt = self.build_prompt(file_path, content)
        for provider in self.providers:
            try:
                result = provider.run(prompt, system=self.SYSTEM_PROMPT)
            except (RuntimeError, OSError) as exc:
                self.logger.warning("Provider %s failed for %s: %s", provider.name, file_path, exc)
                continue
            if result and result.strip():
                self.logger.debug("Provider %s documented %s", provider.name, file_path)
                return result.strip() + "\n"
            self.logger.warning("Provider %s returned no content for %s", provider.name, file_path)
        return None

    @property
    def provider_names(self) -> Iterable[str]:
        return [provider.name for provider in self.providers]

    @classmethod
    def from_config(
        cls,
        config: DocBranchConfig,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Summarizer":
        providers = config.providers or default_providers(environ)
        return cls(build_runners(providers, environ), max_chars=config.summarize.max_chars)


def default_providers(environ: Optional[Mapping[str, str]] = None) -> List[ProviderConfig]:
    """Known providers whose API key is set, ``AI_PROVIDER`` first."""
    env = os.environ if environ is None else environ
    preferred = (env.get("AI_PROVIDER") or "openai").strip().lower()
    order = sorted(KNOWN_PROVIDERS, key=lambda name: name != preferred)
    return [
        ProviderConfig(name=name)
        for name in order
        if env.get(KNOWN_PROVIDERS[name][2])
    ]


def build_runners(
    providers: Sequence[ProviderConfig],
    environ: Optional[Mapping[str, str]] = None,
) -> List[LLMRunner]:
    env = os.environ if environ is None else environ
    runners: List[LLMRunner] = []
    for provider in providers:
        base_url, model, key_env = KNOWN_PROVIDERS.get(provider.name.lower(), (None, None, None))
        key_env = provider.api_key_env or key_env
        api_key = provider.api_key or (env.get(key_env) if key_env else None)
        runners.append(
            LLMRunner(
                provider.model or model,
                name=provider.name,
                base_url=provider.base_url or base_url,
                temperature=0.1 if provider.temperature is None else provider.temperature,
                max_tokens=provider.max_tokens or 2500,
                api_key=api_key or "",
                request_timeout=provider.request_timeout or 120.0,
            )
        )
    return runners


__all__ = [
    "KNOWN_PROVIDERS",
    "MAX_INPUT_CHARS",
    "Provider",
    "Summarizer",
    "build_runners",
    "default_providers",
]
