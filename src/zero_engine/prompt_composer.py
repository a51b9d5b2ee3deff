from __future__ import annotations

from zero_engine.protocol import Stage
from zero_engine.self_awareness import (
    KeywordMetaQuestionClassifier,
    MetaQuestionClassifier,
    build_meta_prompt,
)

STANDARD_MODE_MARKER = "[Mode: Standard]"
CHAIN_MODE_MARKER = "[Mode: Autonomous Chain]"


def build_translation_prompt(text: str, language: str) -> str:
    return (
        f"Translate the following text to {language}. Only provide the translated text, "
        f'with no additional commentary or labels:\n\n"{text}"'
    )


def format_standing_constraints(constraints: list[str]) -> str:
    rules = [c.strip() for c in constraints if c.strip()]
    if not rules:
        return ""
    lines = "\n".join(f"- {rule}" for rule in rules)
    return f"[STANDING CONSTRAINTS]\n{lines}"


class PromptComposer:
    def __init__(
        self,
        *,
        directive: str,
        source_cache: dict[str, str] | None = None,
        classifier: MetaQuestionClassifier | None = None,
    ) -> None:
        self._directive = directive
        self._source_cache = source_cache
        self._classifier = classifier or KeywordMetaQuestionClassifier()

    def set_source_cache(self, source_cache: dict[str, str] | None) -> None:
        self._source_cache = source_cache

    def is_meta_question(self, user_text: str, stage: Stage) -> bool:
        """Meta questions only apply to fresh tasks, and only when the source is loaded."""
        if stage != Stage.AWAITING_TASK or not self._source_cache:
            return False
        return self._classifier.is_meta_question(user_text)

    def compose(
        self,
        user_text: str,
        stage: Stage,
        standing_constraints: list[str],
        is_chain_mode: bool,
        is_meta_question: bool,
    ) -> str:
        if stage == Stage.AWAITING_CRITIQUE:
            return user_text

        if is_meta_question and self._source_cache:
            return build_meta_prompt(user_text, self._source_cache, self._directive)

        blocks = [CHAIN_MODE_MARKER if is_chain_mode else STANDARD_MODE_MARKER]
        constraints_block = format_standing_constraints(standing_constraints or [])
        if constraints_block:
            blocks.append(constraints_block)
        blocks.append(f"[Task]\n{user_text}")
        return "\n\n".join(blocks)
