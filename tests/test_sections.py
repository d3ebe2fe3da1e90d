"""Tests for body section extraction and in-place section rewriting."""

from backlogkit.core.tasks.models import ChecklistItem
from backlogkit.core.tasks.sections import (
    SPECS_BY_FIELD,
    classify,
    parse_checklist,
    render_checklist,
    replace_section,
    scan_body,
    toggle_checklist_item,
)

DESCRIPTION = SPECS_BY_FIELD["description"]
AC = SPECS_BY_FIELD["acceptance_criteria"]
DOD = SPECS_BY_FIELD["definition_of_done"]
PLAN = SPECS_BY_FIELD["plan"]
NOTES = SPECS_BY_FIELD["implementation_notes"]

MARKED_BODY = (
    "## Description\n"
    "\n"
    "<!-- SECTION:DESCRIPTION:BEGIN -->\n"
    "Old description\n"
    "<!-- SECTION:DESCRIPTION:END -->\n"
    "\n"
    "## Acceptance Criteria\n"
    "<!-- AC:BEGIN -->\n"
    "- [ ] #1 First\n"
    "- [ ] #2 Second\n"
    "<!-- AC:END -->\n"
    "\n"
    "## Definition of Done\n"
    "<!-- DOD:BEGIN -->\n"
    "- [ ] #1 Tests pass\n"
    "<!-- DOD:END -->\n"
    "\n"
    "## Implementation Notes\n"
    "\n"
    "<!-- SECTION:NOTES:BEGIN -->\n"
    "Notes here\n"
    "<!-- SECTION:NOTES:END -->"
)


def _sections(body: str) -> dict[str, str]:
    parsed = scan_body(body)
    result = {}
    for span in parsed.spans:
        spec = classify(span)
        if spec is not None:
            result.setdefault(spec.field, parsed.content(span))
    return result


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


class TestScanBody:
    def test_marked_sections(self):
        sections = _sections(MARKED_BODY)
        assert sections["description"] == "Old description"
        assert sections["implementation_notes"] == "Notes here"
        assert "#2 Second" in sections["acceptance_criteria"]

    def test_heading_only_sections(self):
        body = "## Description\n\nPlain text\nsecond line\n\n## Implementation Plan\n\n1. Step"
        sections = _sections(body)
        assert sections["description"] == "Plain text\nsecond line"
        assert sections["plan"] == "1. Step"

    def test_heading_matching_ignores_case(self):
        sections = _sections("## DESCRIPTION\nLoud\n\n## notes\nquiet")
        assert sections["description"] == "Loud"
        assert sections["implementation_notes"] == "quiet"

    def test_markers_without_heading(self):
        body = "<!-- SECTION:DESCRIPTION:BEGIN -->\nBare\n<!-- SECTION:DESCRIPTION:END -->"
        assert _sections(body)["description"] == "Bare"

    def test_markers_win_over_surrounding_text(self):
        body = (
            "## Description\n"
            "<!-- SECTION:DESCRIPTION:BEGIN -->\n"
            "Inside\n"
            "<!-- SECTION:DESCRIPTION:END -->\n"
            "Trailing text outside markers"
        )
        assert _sections(body)["description"] == "Inside"

    def test_first_section_wins(self):
        body = "## Description\nFirst\n\n## Description\nSecond"
        assert _sections(body)["description"] == "First"

    def test_title_heading(self):
        assert scan_body("# TASK-3 - Heading Title\n\nText").title == "Heading Title"
        assert scan_body("# Plain title").title == "Plain title"

    def test_title_only_before_sections(self):
        assert scan_body("## Description\n# Not a title").title is None

    def test_named_sections(self):
        body = "## Context\nWhy\n\n## Decision\nWhat"
        assert scan_body(body).named() == {"context": "Why", "decision": "What"}


class TestChecklist:
    def test_stable_and_legacy_items(self):
        items = parse_checklist("- [ ] #1 Open item\n- [X] #2 Done item\n- [x] Legacy item\ntext")
        assert items == [
            ChecklistItem(number=1, text="Open item", checked=False),
            ChecklistItem(number=2, text="Done item", checked=True),
            ChecklistItem(number=None, text="Legacy item", checked=True),
        ]

    def test_render(self):
        items = [ChecklistItem(number=1, text="A", checked=True), ChecklistItem(text="B")]
        assert render_checklist(items) == "- [x] #1 A\n- [ ] B"


# ---------------------------------------------------------------------------
# Rewriting
# ---------------------------------------------------------------------------


class TestReplaceSection:
    def test_marked_section_only_inner_lines_change(self):
        result = replace_section(MARKED_BODY, DESCRIPTION, "New description")
        assert result == MARKED_BODY.replace("Old description", "New description")

    def test_heading_only_section_gets_markers(self):
        body = "## Description\nOld text\n\n## Notes from call\nkeep me"
        result = replace_section(body, DESCRIPTION, "New")
        assert result == (
            "## Description\n"
            "\n"
            "<!-- SECTION:DESCRIPTION:BEGIN -->\n"
            "New\n"
            "<!-- SECTION:DESCRIPTION:END -->\n"
            "\n"
            "## Notes from call\n"
            "keep me"
        )

    def test_missing_section_inserted_in_order(self):
        result = replace_section(MARKED_BODY, PLAN, "1. Do it")
        plan_at = result.index("## Implementation Plan")
        assert result.index("## Definition of Done") < plan_at
        assert plan_at < result.index("## Implementation Notes")
        assert _sections(result)["plan"] == "1. Do it"

    def test_missing_section_appended(self):
        result = replace_section("Free text only", NOTES, "A note")
        assert result.startswith("Free text only\n\n## Implementation Notes")
        assert _sections(result)["implementation_notes"] == "A note"

    def test_empty_body(self):
        result = replace_section("", DESCRIPTION, "Hello")
        assert result == (
            "## Description\n\n"
            "<!-- SECTION:DESCRIPTION:BEGIN -->\nHello\n<!-- SECTION:DESCRIPTION:END -->"
        )

    def test_remove_section(self):
        result = replace_section(MARKED_BODY, DOD, None)
        assert "Definition of Done" not in result
        assert "\n\n\n" not in result
        assert _sections(result)["implementation_notes"] == "Notes here"

    def test_remove_missing_section_is_noop(self):
        assert replace_section("Text", PLAN, "") == "Text"

    def test_checklist_has_no_blank_after_heading(self):
        result = replace_section("", AC, "- [ ] #1 Item")
        assert result.startswith("## Acceptance Criteria\n<!-- AC:BEGIN -->\n")


class TestToggle:
    def test_toggles_only_named_group(self):
        body, found = toggle_checklist_item(MARKED_BODY, AC, 1)
        assert found
        assert "- [x] #1 First" in body
        assert "- [ ] #1 Tests pass" in body

    def test_toggle_back(self):
        once, _ = toggle_checklist_item(MARKED_BODY, DOD, 1)
        twice, _ = toggle_checklist_item(once, DOD, 1)
        assert "- [x] #1 Tests pass" in once
        assert twice == MARKED_BODY

    def test_missing_number(self):
        body, found = toggle_checklist_item(MARKED_BODY, AC, 9)
        assert not found
        assert body == MARKED_BODY

    def test_missing_group(self):
        _, found = toggle_checklist_item("## Description\nText", AC, 1)
        assert not found

    def test_duplicate_numbers_flip_first(self):
        body = "## Acceptance Criteria\n- [ ] #1 One\n- [ ] #1 Again"
        result, found = toggle_checklist_item(body, AC, 1)
        assert found
        assert result == "## Acceptance Criteria\n- [x] #1 One\n- [ ] #1 Again"
