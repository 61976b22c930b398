"""Tests for powerlevel.lib.planparse module."""

import pytest

from powerlevel.lib.planparse import extract_plan_from_message, link_plan_to_epic, parse_plan


PLAN = """# Login Flow

priority: P1

**Epic Issue:** #42

## Goal

Users can log in with email.
Sessions last a week.

## Architecture

Server-side sessions.

## Tasks

- [ ] Add login form
- [x] Add session store
* Add logout button
"""


class TestParsePlan:
    """Test parse_plan function."""

    def test_parses_all_sections(self, tmp_path):
        path = tmp_path / "plan.md"
        path.write_text(PLAN)

        plan = parse_plan(path)

        assert plan.title == "Login Flow"
        assert plan.priority == "p1"
        assert plan.goal == "Users can log in with email.\nSessions last a week."
        assert plan.tasks == ["Add login form", "Add session store", "Add logout button"]
        assert plan.epic_number == 42

    def test_defaults_for_bare_file(self, tmp_path):
        path = tmp_path / "plan.md"
        path.write_text("nothing useful\n")

        plan = parse_plan(path)

        assert plan.title == "Untitled Plan"
        assert plan.goal == "No goal specified"
        assert plan.tasks == []
        assert plan.priority == "p2"
        assert plan.epic_number is None

    def test_steps_heading_counts_as_tasks(self, tmp_path):
        path = tmp_path / "plan.md"
        path.write_text("# X\n\n### Steps\n\n- one\n- two\n")
        assert parse_plan(path).tasks == ["one", "two"]

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            parse_plan(tmp_path / "missing.md")

    def test_rule_ends_goal_section(self, tmp_path):
        path = tmp_path / "plan.md"
        path.write_text("# X\n\n## Goal\n\nShip it.\n\n---\n\nFootnote\n")
        assert parse_plan(path).goal == "Ship it."


class TestLinkPlanToEpic:
    """Test link_plan_to_epic function."""

    def test_reference_is_read_back(self, tmp_path):
        path = tmp_path / "plan.md"
        path.write_text("# Login Flow\n\n## Tasks\n\n- Add login form\n")

        link_plan_to_epic(path, 42, "https://github.com/acme/widgets/issues/42")

        plan = parse_plan(path)
        assert plan.epic_number == 42
        assert plan.tasks == ["Add login form"]
        assert path.read_text().endswith("**Epic Issue:** #42 (https://github.com/acme/widgets/issues/42)\n")


class TestExtractPlanFromMessage:
    """Test extract_plan_from_message function."""

    def test_finds_plan_path(self):
        message = "I'm using the executing-plans skill to implement docs/plans/2026-01-05-login.md now"
        assert extract_plan_from_message(message) == "docs/plans/2026-01-05-login.md"

    def test_no_plan_path(self):
        assert extract_plan_from_message("no plan here") is None

    def test_empty_message(self):
        assert extract_plan_from_message("") is None
