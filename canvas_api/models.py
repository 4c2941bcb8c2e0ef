from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Course:
    """A configured course: Canvas id plus the alias shown in the finder."""

    id: int
    display_name: str


class ItemType(Enum):
    PAGE = "Page"
    ASSIGNMENT = "Assignment"
    QUIZ = "Quiz"
    FILE = "File"
    DISCUSSION = "Discussion"
    EXTERNAL_URL = "ExternalUrl"
    SUB_HEADER = "SubHeader"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ItemType":
        """Map a Canvas item type string, falling back to OTHER for unknown kinds."""
        for member in cls:
            if member.value == value:
                return member
        return cls.OTHER


@dataclass(frozen=True)
class Module:
    id: int
    name: str
    position: int

    @classmethod
    def from_dict(cls, data: dict) -> "Module":
        """Create a Module from a Canvas modules API object."""
        return cls(
            id=int(data["id"]),
            name=data.get("name") or "",
            position=int(data.get("position") or 0),
        )


@dataclass(frozen=True)
class ModuleItem:
    id: int
    title: str
    type: ItemType
    html_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ModuleItem":
        """Create a ModuleItem from a Canvas module items API object."""
        return cls(
            id=int(data["id"]),
            title=data.get("title") or "",
            type=ItemType.parse(data.get("type")),
            html_url=data.get("html_url") or None,
        )

    @property
    def is_navigable(self) -> bool:
        return self.type is not ItemType.SUB_HEADER


@dataclass
class CourseResult:
    """Modules (each with its items) fetched for one course."""

    course: Course
    modules: List[Tuple[Module, List[ModuleItem]]] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        return sum(len(items) for _, items in self.modules)


@dataclass
class AggregateResult:
    """Outcome of fetching every configured course, both lists in configured order."""

    successes: List[CourseResult] = field(default_factory=list)
    failures: List[Tuple[Course, Exception]] = field(default_factory=list)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def all_failed(self) -> bool:
        return bool(self.failures) and not self.successes


@dataclass(frozen=True)
class FlatRecord:
    course_name: str
    module_name: str
    item_title: str
    item_url: str = ""
