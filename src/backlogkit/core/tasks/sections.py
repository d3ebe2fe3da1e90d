"""
Body section and checklist extraction.

A task body is a sequence of ``## Heading`` sections. Sections written by
recent tools also wrap their content in marker comments::

    ## Description

    <!-- SECTION:DESCRIPTION:BEGIN -->
    Text
    <!-- SECTION:DESCRIPTION:END -->

Markers win when present; otherwise a heading starts a section and the
next ``##`` heading (or the end of the document) ends it. The same
line scan drives both extraction and in-place rewriting, so a patch to
one section leaves every other line of the body untouched.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from .models import ChecklistItem

_BEGIN = re.compile(r"^<!--\s*([A-Z_]+(?::[A-Z_]+)?):BEGIN\s*-->$")
_COMMENT = re.compile(r"^<!--.*-->$")
_CHECKLIST_ITEM = re.compile(r"^-\s*\[([ xX])\]\s*(?:#(\d+)\s+)?(.+)$")
_TITLE = re.compile(r"^#\s+(?:[A-Za-z]+-\d+(?:\.\d+)*\s*-\s*)?(.+)$")


@dataclass(frozen=True)
class SectionSpec:
    """How one logical section is named, marked and recognized."""

    field: str
    heading: str
    marker: str
    matches: Callable[[str], bool]
    checklist: bool = False
    blank_after_heading: bool = True


def _contains(*needles: str) -> Callable[[str], bool]:
    return lambda heading: any(n in heading.lower() for n in needles)


# Order is the canonical order sections are written in.
TASK_SECTIONS: tuple[SectionSpec, ...] = (
    SectionSpec("description", "Description", "SECTION:DESCRIPTION", _contains("description")),
    SectionSpec(
        "acceptance_criteria",
        "Acceptance Criteria",
        "AC",
        _contains("acceptance criteria"),
        checklist=True,
        blank_after_heading=False,
    ),
    SectionSpec(
        "definition_of_done",
        "Definition of Done",
        "DOD",
        _contains("definition of done"),
        checklist=True,
        blank_after_heading=False,
    ),
    SectionSpec(
        "implementation_notes",
        "Implementation Notes",
        "SECTION:NOTES",
        lambda h: "implementation notes" in h.lower() or h.strip().lower() == "notes",
    ),
    SectionSpec("plan", "Implementation Plan", "SECTION:PLAN", _contains("plan")),
    SectionSpec("final_summary", "Final Summary", "SECTION:FINAL_SUMMARY", _contains("summary")),
)

# Written order differs from recognition order: plan is written before notes.
WRITE_ORDER = ("description", "acceptance_criteria", "definition_of_done", "plan",
               "implementation_notes", "final_summary")

SPECS_BY_FIELD = {spec.field: spec for spec in TASK_SECTIONS}
SPECS_BY_MARKER = {spec.marker: spec for spec in TASK_SECTIONS}


@dataclass
class SectionSpan:
    """Line range of one section inside a body."""

    heading: str | None
    start: int
    end: int
    marker: str | None = None
    inner_start: int | None = None
    inner_end: int | None = None

    def content_lines(self, lines: list[str]) -> list[str]:
        if self.marker is not None and self.inner_start is not None:
            return lines[self.inner_start + 1 : self.inner_end]
        return [
            line
            for line in lines[self.start + 1 : self.end]
            if not _COMMENT.match(line.strip())
        ]


@dataclass
class ParsedBody:
    """Result of scanning a body: the fallback title plus every section span."""

    lines: list[str]
    title: str | None = None
    spans: list[SectionSpan] = field(default_factory=list)

    def content(self, span: SectionSpan) -> str:
        return _trim_blank_lines(span.content_lines(self.lines))

    def named(self) -> dict[str, str]:
        """Heading text (lower-cased) -> content, first occurrence wins."""
        result: dict[str, str] = {}
        for span in self.spans:
            if span.heading is None:
                continue
            result.setdefault(span.heading.lower(), self.content(span))
        return result


def _trim_blank_lines(lines: list[str]) -> str:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return "\n".join(lines[start:end])


def _find_end(lines: list[str], begin: int, name: str) -> int | None:
    end_marker = f"<!-- {name}:END -->"
    compact = end_marker.replace(" ", "")
    for j in range(begin + 1, len(lines)):
        if lines[j].strip().replace(" ", "") == compact:
            return j
    return None


def scan_body(body: str) -> ParsedBody:
    """
    Locate the title heading and every section span in a body.

    Args:
        body: Body text with LF line endings

    Returns:
        ParsedBody with spans in document order
    """
    lines = body.split("\n")
    parsed = ParsedBody(lines=lines)
    current: SectionSpan | None = None
    i = 0

    while i < len(lines):
        stripped = lines[i].strip()

        begin = _BEGIN.match(stripped)
        if begin:
            name = begin.group(1)
            end_index = _find_end(lines, i, name)
            if end_index is not None:
                if current is None or current.marker is not None:
                    span = SectionSpan(
                        heading=None,
                        start=i,
                        end=end_index + 1,
                        marker=name,
                        inner_start=i,
                        inner_end=end_index,
                    )
                    parsed.spans.append(span)
                    current = None
                else:
                    current.marker = name
                    current.inner_start = i
                    current.inner_end = end_index
                    current.end = end_index + 1
                i = end_index + 1
                continue

        if stripped.startswith("## "):
            current = SectionSpan(heading=stripped[3:].strip(), start=i, end=i + 1)
            parsed.spans.append(current)
            i += 1
            continue

        if stripped.startswith("# ") and parsed.title is None and not parsed.spans:
            if match := _TITLE.match(stripped):
                parsed.title = match.group(1).strip()

        i += 1
        if current is not None:
            current.end = i

    return parsed


def classify(span: SectionSpan, specs: tuple[SectionSpec, ...] = TASK_SECTIONS) -> SectionSpec | None:
    """Map a span to its logical section, marker first, heading second."""
    if span.marker is not None:
        for spec in specs:
            if spec.marker == span.marker:
                return spec
    if span.heading is not None:
        for spec in specs:
            if spec.matches(span.heading):
                return spec
    return None


def parse_checklist(content: str) -> list[ChecklistItem]:
    """
    Parse checklist lines.

    Both ``- [ ] #3 text`` and legacy ``- [x] text`` are recognized; the
    check character is case-insensitive. Legacy items get ``number=None``.
    """
    items: list[ChecklistItem] = []
    for line in content.split("\n"):
        match = _CHECKLIST_ITEM.match(line.strip())
        if not match:
            continue
        mark, number, text = match.groups()
        items.append(
            ChecklistItem(
                number=int(number) if number is not None else None,
                text=text.strip(),
                checked=mark.lower() == "x",
            )
        )
    return items


def render_checklist(items: list[ChecklistItem]) -> str:
    lines = []
    for item in items:
        mark = "x" if item.checked else " "
        number = f"#{item.number} " if item.number is not None else ""
        lines.append(f"- [{mark}] {number}{item.text}")
    return "\n".join(lines)


def render_section(spec: SectionSpec, content: str) -> list[str]:
    """Render a full section (heading, markers, content) as lines."""
    lines = [f"## {spec.heading}"]
    if spec.blank_after_heading:
        lines.append("")
    lines.append(f"<!-- {spec.marker}:BEGIN -->")
    if content:
        lines.extend(content.split("\n"))
    lines.append(f"<!-- {spec.marker}:END -->")
    return lines


def _find_span(parsed: ParsedBody, spec: SectionSpec) -> SectionSpan | None:
    for span in parsed.spans:
        if span.marker == spec.marker:
            return span
    for span in parsed.spans:
        if span.marker is None and span.heading is not None and spec.matches(span.heading):
            return span
    return None


def replace_section(body: str, spec: SectionSpec, content: str | None) -> str:
    """
    Rewrite one section in place and return the new body.

    - Marked section: only the lines between the markers change.
    - Heading-only section: its content is replaced by a marked block.
    - Missing section: it is inserted before the first section that comes
      later in the canonical order, or appended.
    - ``content`` of None or empty removes the section.
    """
    parsed = scan_body(body)
    lines = list(parsed.lines)
    span = _find_span(parsed, spec)
    remove = not content

    if span is not None:
        if remove:
            new_lines = _splice(lines[: span.start], [], lines[span.end :])
        elif span.marker is not None and span.inner_start is not None:
            new_lines = (
                lines[: span.inner_start + 1]
                + content.split("\n")
                + lines[span.inner_end :]
            )
        else:
            block = render_section(spec, content)[1:]
            new_lines = _splice(lines[: span.start + 1] + block, [], lines[span.end :])
        return "\n".join(new_lines).strip("\n")

    if remove:
        return body

    block = render_section(spec, content)
    order = WRITE_ORDER.index(spec.field) if spec.field in WRITE_ORDER else len(WRITE_ORDER)
    insert_at: int | None = None
    for other in parsed.spans:
        other_spec = classify(other)
        if other_spec is None or other_spec.field not in WRITE_ORDER:
            continue
        if WRITE_ORDER.index(other_spec.field) > order:
            insert_at = other.start
            break

    if insert_at is None:
        new_lines = _splice(lines, block, [])
    else:
        new_lines = _splice(lines[:insert_at], block, lines[insert_at:])
    return "\n".join(new_lines).strip("\n")


def toggle_checklist_item(body: str, spec: SectionSpec, number: int) -> tuple[str, bool]:
    """
    Flip the first ``#number`` item in one checklist group.

    Returns:
        Tuple of (new body, whether an item was found)
    """
    parsed = scan_body(body)
    span = _find_span(parsed, spec)
    if span is None:
        return body, False

    lines = list(parsed.lines)
    if span.marker is not None and span.inner_start is not None and span.inner_end is not None:
        first, last = span.inner_start + 1, span.inner_end
    else:
        first, last = span.start + 1, span.end

    for index in range(first, last):
        line = lines[index]
        match = _CHECKLIST_ITEM.match(line.strip())
        if not match or match.group(2) is None or int(match.group(2)) != number:
            continue
        mark_at = line.index("[") + 1
        flipped = " " if line[mark_at].lower() == "x" else "x"
        lines[index] = line[:mark_at] + flipped + line[mark_at + 1 :]
        return "\n".join(lines), True

    return body, False


def _trim_trailing_blank(lines: list[str]) -> list[str]:
    end = len(lines)
    while end > 0 and not lines[end - 1].strip():
        end -= 1
    return lines[:end]


def _trim_leading_blank(lines: list[str]) -> list[str]:
    start = 0
    while start < len(lines) and not lines[start].strip():
        start += 1
    return lines[start:]


def _splice(head: list[str], block: list[str], tail: list[str]) -> list[str]:
    """Join runs of lines with exactly one blank line at each seam. Interiors are untouched."""
    result = _trim_trailing_blank(head)
    for part in (block, _trim_leading_blank(tail)):
        if not part:
            continue
        if result:
            result = result + [""]
        result = result + part
    return result
