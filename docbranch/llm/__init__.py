"""Summarization provider adapters."""

from .runner import LLMRunner
from .summarizer import Summarizer, build_runners, default_providers

__all__ = ["LLMRunner", "Summarizer", "build_runners", "default_providers"]
