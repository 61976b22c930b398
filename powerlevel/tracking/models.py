"""
Data models for the tracking cache.

The persisted form is plain JSON (lists of dicts). Cache keeps in-memory
indexes over epics and issues by number; they are rebuilt on load and never
written out.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from powerlevel.lib.errors import NotFoundError

STATE_OPEN = "open"
STATE_CLOSED = "closed"


def now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: str | None) -> datetime:
    """Parse an ISO timestamp for sorting. Unparseable or missing sorts first."""
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class JourneyEntry:
    """One timestamped event in an epic's progress log."""
    timestamp: str
    event: str                                 # task_complete, skill_invocation, ...
    message: str
    agent: Optional[str] = None                # Who did it: subagent id, git-commit-abc1234
    metadata: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict:
        data = {"timestamp": self.timestamp, "event": self.event, "message": self.message}
        if self.agent:
            data["agent"] = self.agent
        if self.metadata:
            data["metadata"] = self.metadata
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "JourneyEntry":
        return cls(
            timestamp=data["timestamp"],
            event=data["event"],
            message=data["message"],
            agent=data.get("agent"),
            metadata=data.get("metadata"),
        )


@dataclass
class MirrorItem:
    """A task sub-issue or a tracked external issue attached to an epic."""
    number: int
    title: str = ""
    state: str = STATE_OPEN
    url: Optional[str] = None
    closed_at: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state == STATE_OPEN

    def to_dict(self) -> dict:
        data = {"number": self.number, "title": self.title, "state": self.state}
        if self.url:
            data["url"] = self.url
        if self.closed_at:
            data["closed_at"] = self.closed_at
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "MirrorItem":
        return cls(
            number=data["number"],
            title=data.get("title") or "",
            state=data.get("state", STATE_OPEN),
            url=data.get("url"),
            closed_at=data.get("closed_at"),
        )


@dataclass
class Issue:
    """Flat index record for a task issue, independent of its epic."""
    number: int
    title: str = ""
    state: str = STATE_OPEN
    epic: Optional[int] = None                 # Owning epic number

    def to_dict(self) -> dict:
        return {"number": self.number, "title": self.title, "state": self.state, "epic": self.epic}

    @classmethod
    def from_dict(cls, data: dict) -> "Issue":
        return cls(
            number=data["number"],
            title=data.get("title") or "",
            state=data.get("state", STATE_OPEN),
            epic=data.get("epic"),
        )


@dataclass
class ProjectBoard:
    id: str
    number: int
    title: Optional[str] = None
    url: Optional[str] = None
    detected_at: Optional[str] = None


@dataclass
class Epic:
    """A unit of tracked work mirrored to one GitHub issue."""
    number: int
    title: str
    goal: Optional[str] = None
    plan_file: Optional[str] = None
    state: str = STATE_OPEN
    labels: set[str] = field(default_factory=set)
    dirty: bool = False
    journey: list[JourneyEntry] = field(default_factory=list)
    sub_issues: list[MirrorItem] = field(default_factory=list)
    tracked_items: list[MirrorItem] = field(default_factory=list)
    external_repo: Optional[str] = None        # owner/repo for tracking epics
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state != STATE_CLOSED

    @property
    def is_tracking_epic(self) -> bool:
        """True if this epic mirrors an external project's open issues."""
        return bool(self.external_repo)

    def find_sub_issue(self, number: int) -> Optional[MirrorItem]:
        for item in self.sub_issues:
            if item.number == number:
                return item
        return None

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "title": self.title,
            "goal": self.goal,
            "plan_file": self.plan_file,
            "state": self.state,
            "labels": sorted(self.labels),
            "dirty": self.dirty,
            "journey": [e.to_dict() for e in self.journey],
            "sub_issues": [i.to_dict() for i in self.sub_issues],
            "tracked_items": [i.to_dict() for i in self.tracked_items],
            "external_repo": self.external_repo,
            "description": self.description,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Epic":
        return cls(
            number=data["number"],
            title=data["title"],
            goal=data.get("goal"),
            plan_file=data.get("plan_file"),
            state=data.get("state", STATE_OPEN),
            labels=set(data.get("labels") or []),
            dirty=bool(data.get("dirty", False)),
            journey=[JourneyEntry.from_dict(e) for e in data.get("journey") or []],
            sub_issues=[MirrorItem.from_dict(i) for i in data.get("sub_issues") or []],
            tracked_items=[MirrorItem.from_dict(i) for i in data.get("tracked_items") or []],
            external_repo=data.get("external_repo"),
            description=data.get("description"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


class Cache:
    """All tracking state for one repository.

    Epics and issues are kept as ordered lists (stable JSON diffs) with a
    number -> record index alongside for O(1) lookups.
    """

    def __init__(
        self,
        epics: list[Epic] | None = None,
        issues: list[Issue] | None = None,
        project_board: ProjectBoard | None = None,
        last_task_check: str | None = None,
    ):
        self.epics: list[Epic] = []
        self.issues: list[Issue] = []
        self._epic_index: dict[int, Epic] = {}
        self._issue_index: dict[int, Issue] = {}
        self.project_board = project_board
        self.last_task_check = last_task_check

        for epic in epics or []:
            self.add_epic(epic)
        for issue in issues or []:
            self.add_issue(issue)

    # --- Epics ---

    def get_epic(self, number: int) -> Epic | None:
        return self._epic_index.get(number)

    def require_epic(self, number: int) -> Epic:
        """Get an epic or raise NotFoundError."""
        epic = self._epic_index.get(number)
        if epic is None:
            raise NotFoundError(f"Epic #{number} not found in cache")
        return epic

    def add_epic(self, epic: Epic) -> Epic:
        """Insert an epic, or replace the record with the same number in place."""
        existing = self._epic_index.get(epic.number)
        if existing is not None:
            position = self.epics.index(existing)
            self.epics[position] = epic
        else:
            self.epics.append(epic)
        if epic.created_at is None:
            epic.created_at = now_iso()
        if epic.updated_at is None:
            epic.updated_at = epic.created_at
        self._epic_index[epic.number] = epic
        return epic

    def mark_dirty(self, number: int) -> Epic:
        """Flag an epic as having unpushed changes. Caller must have made one."""
        epic = self.require_epic(number)
        epic.dirty = True
        return epic

    def dirty_epics(self) -> list[Epic]:
        return [e for e in self.epics if e.dirty]

    def tracking_epics(self) -> list[Epic]:
        return [e for e in self.epics if e.is_tracking_epic and e.is_open]

    # --- Issues ---

    def get_issue(self, number: int) -> Issue | None:
        return self._issue_index.get(number)

    def add_issue(self, issue: Issue) -> Issue:
        existing = self._issue_index.get(issue.number)
        if existing is not None:
            position = self.issues.index(existing)
            self.issues[position] = issue
        else:
            self.issues.append(issue)
        self._issue_index[issue.number] = issue
        return issue

    def add_sub_issue(self, epic_number: int, item: MirrorItem) -> MirrorItem:
        """Attach a task sub-issue to an epic and index it. Marks the epic dirty."""
        epic = self.require_epic(epic_number)
        existing = epic.find_sub_issue(item.number)
        if existing is not None:
            epic.sub_issues[epic.sub_issues.index(existing)] = item
        else:
            epic.sub_issues.append(item)
        self.add_issue(Issue(number=item.number, title=item.title, state=item.state, epic=epic_number))
        epic.dirty = True
        return item

    def find_epic_for_issue(self, issue_number: int) -> Epic | None:
        """Find the epic owning a task issue."""
        for epic in self.epics:
            if epic.find_sub_issue(issue_number) is not None:
                return epic
        issue = self._issue_index.get(issue_number)
        if issue is not None and issue.epic is not None:
            return self._epic_index.get(issue.epic)
        return None

    # --- Serialization ---

    def to_dict(self) -> dict:
        board = None
        if self.project_board is not None:
            board = {
                "id": self.project_board.id,
                "number": self.project_board.number,
                "title": self.project_board.title,
                "url": self.project_board.url,
                "detected_at": self.project_board.detected_at,
            }
        return {
            "epics": [e.to_dict() for e in self.epics],
            "issues": [i.to_dict() for i in self.issues],
            "project_board": board,
            "last_task_check": self.last_task_check,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Cache":
        board_data = data.get("project_board")
        board = None
        if board_data:
            board = ProjectBoard(
                id=board_data["id"],
                number=board_data["number"],
                title=board_data.get("title"),
                url=board_data.get("url"),
                detected_at=board_data.get("detected_at"),
            )
        return cls(
            epics=[Epic.from_dict(e) for e in data.get("epics") or []],
            issues=[Issue.from_dict(i) for i in data.get("issues") or []],
            project_board=board,
            last_task_check=data.get("last_task_check"),
        )
