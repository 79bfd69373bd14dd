"""Structured on-chain reports and their markdown rendering."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ReportSection:
    """A titled block of bullet lines, followed by optional call-out notes.

    A section without a title renders its lines as a plain paragraph.
    """

    title: str | None
    lines: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {"title": self.title, "lines": list(self.lines), "notes": list(self.notes)}


@dataclass
class Report:
    title: str
    sections: list[ReportSection] = field(default_factory=list)

    def add(self, title: str | None, lines: Iterable[str] = (), notes: Iterable[str] = ()) -> ReportSection:
        section = ReportSection(title, list(lines), list(notes))
        self.sections.append(section)
        return section

    def section(self, title: str) -> ReportSection | None:
        return next((s for s in self.sections if s.title == title), None)

    def as_dict(self) -> dict[str, Any]:
        return {"title": self.title, "sections": [s.as_dict() for s in self.sections]}


def render_markdown(report: Report) -> str:
    """Render ``report`` as the markdown shown to users."""
    parts = [f"## {report.title}"]
    for section in report.sections:
        block: list[str] = []
        if section.title:
            block.append(f"### {section.title}")
            block.extend(f"- {line}" for line in section.lines)
        else:
            block.extend(section.lines)
        parts.append("\n".join(block))
        parts.extend(f"> {note}" for note in section.notes)
    return "\n\n".join(part for part in parts if part)


def render_sections(sections: Iterable[tuple[str, Report]]) -> str:
    """Render several reports, each under its own top-level heading."""
    return "\n\n".join(
        f"## {heading}\n\n{render_markdown(report)}" for heading, report in sections
    )
