"""Bracket-section parser for engine responses.

A response is a run of sections, each opened by a ``[Title]`` tag::

    [Acknowledgement]
    Task and constraints received.

    [Draft]
    ...

A section's content runs until the next blank line that is immediately
followed by ``[``, or until the end of the text. The parser is pure and is
re-run on the cumulative text of a stream after every chunk, so a longer
prefix only ever yields more sections or longer content.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

FALLBACK_TITLE = "Response"
TASK_TITLE = "Task"
CONSTRAINT_TITLES = frozenset({"Constraints", "STANDING CONSTRAINTS"})
REFINED_ANSWER_PREFIX = "Refined Answer"

_SECTION_RE = re.compile(r"\[([^\]]+)\]\s*([\s\S]*?)(?=\n\n\[|\Z)")
_ANY_TAG_RE = re.compile(r"\[.*?\]")
_C4_SCORE_RE = re.compile(r"(\d\.\d+)")


@dataclass(frozen=True)
class Section:
    title: str
    content: str

    def to_dict(self) -> dict:
        return {"title": self.title, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict) -> Section:
        return cls(title=str(data["title"]), content=str(data["content"]))


@dataclass(frozen=True)
class ParsedResponse:
    sections: list[Section] = field(default_factory=list)
    is_chain_mode: bool = False
    task: Section | None = None
    constraints: Section | None = None
    refined_answers: list[Section] = field(default_factory=list)

    def to_dict(self) -> dict:
        data: dict = {
            "sections": [s.to_dict() for s in self.sections],
            "is_chain_mode": self.is_chain_mode,
        }
        if self.is_chain_mode:
            data["task"] = self.task.to_dict() if self.task else None
            data["constraints"] = self.constraints.to_dict() if self.constraints else None
            data["refined_answers"] = [s.to_dict() for s in self.refined_answers]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> ParsedResponse:
        task = data.get("task")
        constraints = data.get("constraints")
        return cls(
            sections=[Section.from_dict(s) for s in data.get("sections", [])],
            is_chain_mode=bool(data.get("is_chain_mode", False)),
            task=Section.from_dict(task) if task else None,
            constraints=Section.from_dict(constraints) if constraints else None,
            refined_answers=[Section.from_dict(s) for s in data.get("refined_answers", [])],
        )


def split_sections(text: str) -> list[Section]:
    """Return the flat, ordered section list for ``text``.

    Text without any tag, or whose tags yield nothing, becomes a single
    ``Response`` section holding the text verbatim. Empty text yields no
    sections.
    """
    if not text:
        return []

    if _ANY_TAG_RE.search(text) is None:
        return [Section(FALLBACK_TITLE, text)]

    sections = [
        Section(match.group(1).strip(), match.group(2).strip())
        for match in _SECTION_RE.finditer(text)
    ]
    if not sections:
        return [Section(FALLBACK_TITLE, text)]
    return sections


def is_chain_response(sections: list[Section]) -> bool:
    return any(s.title.startswith(REFINED_ANSWER_PREFIX) for s in sections)


def parse_response(text: str) -> ParsedResponse:
    sections = split_sections(text)
    if not is_chain_response(sections):
        return ParsedResponse(sections=sections)

    task: Section | None = None
    constraints: Section | None = None
    refined_answers: list[Section] = []

    for section in sections:
        if section.title == TASK_TITLE:
            if task is None:
                task = section
        elif section.title in CONSTRAINT_TITLES:
            if constraints is None:
                constraints = section
            else:
                merged = f"{constraints.content}\n\n**{section.title}**\n{section.content}"
                constraints = Section(constraints.title, merged)
        elif section.title.startswith(REFINED_ANSWER_PREFIX):
            refined_answers.append(section)

    return ParsedResponse(
        sections=sections,
        is_chain_mode=True,
        task=task,
        constraints=constraints,
        refined_answers=refined_answers,
    )


def extract_c4_score(section: Section) -> float:
    if "c4 score" not in section.title.lower():
        return 0.0
    match = _C4_SCORE_RE.search(section.content)
    return float(match.group(1)) if match else 0.0
