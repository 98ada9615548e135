"""Prompt text loading. Prompts are configuration, kept as files under ``prompts/``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from utils.exceptions import ConfigurationError


SUMMARY_PROMPT_FILE = "summary.txt"
QUESTION_PROMPT_FILE = "question.txt"


@dataclass(frozen=True)
class PromptSet:
    """Prompt texts for the two generation phases."""

    summary: str
    question: str

    def question_prompt(self, summary: Optional[str] = None) -> str:
        """Full-item prompt, seeded with an accepted topic summary when given."""
        if summary:
            return f"{self.question}\n\nGenerate a question about: {summary}"
        return self.question


def load_prompts(prompts_dir: Union[str, Path]) -> PromptSet:
    """Read ``summary.txt`` and ``question.txt`` from ``prompts_dir``."""
    base = Path(prompts_dir)
    texts = {}
    for name in (SUMMARY_PROMPT_FILE, QUESTION_PROMPT_FILE):
        path = base / name
        if not path.exists():
            raise ConfigurationError(f"Prompt file not found: {path}")
        text = path.read_text(encoding="utf-8").strip()
        if not text:
            raise ConfigurationError(f"Prompt file is empty: {path}")
        texts[name] = text
    return PromptSet(summary=texts[SUMMARY_PROMPT_FILE], question=texts[QUESTION_PROMPT_FILE])
