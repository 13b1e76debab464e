"""
Domain Models
=============

Dataclasses and enums describing the entities exchanged with the BugBoard
backend: users, issues and comments.

The backend speaks Italian on the wire (``titolo``, ``descrizione``,
``scrittoDa`` ...). Each model owns its mapping through ``from_json`` /
``to_json`` so the rest of the client only sees English attribute names.
Unknown keys in incoming payloads are ignored.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


# ============================================================================
# ENUMS
# ============================================================================

class LabeledEnum(Enum):
    """Enum whose members carry a human-readable label for display."""

    def __init__(self, label: str):
        self.label = label

    def __str__(self) -> str:
        return self.label

    @classmethod
    def parse(cls, value: Any):
        """Resolve a wire value (member name or label, any case) to a member."""
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        key = text.upper().replace(" ", "_")
        if key in cls.__members__:
            return cls[key]
        for member in cls:
            if member.label.casefold() == text.casefold():
                return member
        raise ValueError(f"Unknown {cls.__name__}: {value!r}")


class UserType(Enum):
    ADMIN = "ADMIN"
    USER = "USER"

    @classmethod
    def from_role(cls, role: Any) -> "UserType":
        """
        Map a backend role field to a user type.

        The backend sends either a single string (``"ADMIN"``) or a list of
        Spring-style authorities (``["ROLE_ADMIN"]``). Any role containing
        ``ADMIN`` (case-insensitive) grants ADMIN, everything else is USER.
        """
        if isinstance(role, UserType):
            return role
        if role is None:
            return cls.USER
        roles = role if isinstance(role, (list, tuple)) else [role]
        if any("ADMIN" in str(r).upper() for r in roles):
            return cls.ADMIN
        return cls.USER


class IssueType(LabeledEnum):
    QUESTION = "Question"
    BUG = "Bug"
    DOCUMENTATION = "Documentation"
    FEATURE = "Feature"


class Priority(LabeledEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class IssueState(LabeledEnum):
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


# ============================================================================
# HELPERS
# ============================================================================

TIMESTAMP_DISPLAY_FORMAT = "%b %d, %Y %H:%M"


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, (list, tuple)):
        # Jackson without JavaTimeModule: [yyyy, MM, dd, HH, mm, ss, nanos]
        parts = list(value) + [0] * (6 - len(value))
        return datetime(*parts[:6])
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        # Local naive time, comparable with datetime.now()
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''} ago"


# ============================================================================
# DATACLASSES
# ============================================================================

@dataclass(eq=False)
class User:
    """
    A BugBoard account.

    The username is the account email and is unique case-insensitively, so
    equality and hashing go through the case-folded username.

    Attributes:
        username: Email address used to log in
        password: Secret supplied at login or creation time (never logged)
        role: ADMIN or USER
        id: Server-assigned identifier, None until known
    """
    username: str
    password: str = field(default="", repr=False)
    role: UserType = UserType.USER
    id: Optional[int] = None

    @property
    def key(self) -> str:
        return (self.username or "").strip().casefold()

    def __eq__(self, other):
        if not isinstance(other, User):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    @property
    def is_admin(self) -> bool:
        return self.role is UserType.ADMIN

    @classmethod
    def from_json(cls, data: Optional[Dict[str, Any]]) -> Optional["User"]:
        if not data:
            return None
        role = data.get("role", data.get("roles", data.get("type")))
        return cls(
            username=data.get("email") or data.get("username") or "",
            password="",
            role=UserType.from_role(role),
            id=data.get("id"),
        )

    def to_json(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"email": self.username, "role": self.role.value}
        if self.id is not None:
            payload["id"] = self.id
        return payload

    def to_create_request(self) -> Dict[str, Any]:
        return {"email": self.username, "password": self.password, "role": self.role.value}


@dataclass
class Comment:
    """A comment attached to exactly one issue."""
    content: str
    issue_id: Optional[int]
    author: Optional[User] = None
    timestamp: datetime = field(default_factory=datetime.now)
    id: Optional[int] = None

    def formatted_timestamp(self) -> str:
        return self.timestamp.strftime(TIMESTAMP_DISPLAY_FORMAT)

    def relative_time(self, now: Optional[datetime] = None) -> str:
        """Describe the comment age, e.g. ``5 minutes ago``; falls back to the date after a week."""
        now = now or datetime.now()
        elapsed = now - self.timestamp
        minutes = int(elapsed.total_seconds() // 60)
        hours = minutes // 60
        days = elapsed.days

        if minutes < 1:
            return "just now"
        if minutes < 60:
            return _plural(minutes, "minute")
        if hours < 24:
            return _plural(hours, "hour")
        if days < 7:
            return _plural(days, "day")
        return self.formatted_timestamp()

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Comment":
        return cls(
            id=data.get("id"),
            author=User.from_json(data.get("scrittoDa")),
            issue_id=data.get("appartieneId"),
            content=data.get("descrizione") or "",
            timestamp=_parse_datetime(data.get("data")) or datetime.now(),
        )

    def to_json(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "scrittoDa": self.author.to_json() if self.author else None,
            "appartieneId": self.issue_id,
            "descrizione": self.content,
            "data": self.timestamp.isoformat(timespec="seconds"),
        }
        if self.id is not None:
            payload["id"] = self.id
        return payload


@dataclass
class Issue:
    """
    A tracked issue.

    ``comments`` is not part of the fetch-all payload; it is filled on demand
    by the comment controller and only ever appended to afterwards.
    """
    title: str
    description: str
    type: IssueType
    priority: Priority
    state: IssueState
    reporter: Optional[User] = None
    image_path: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    comments: List[Comment] = field(default_factory=list, repr=False)

    def add_comment(self, comment: Comment) -> None:
        self.comments.append(comment)

    def set_comments(self, comments: List[Comment]) -> None:
        self.comments = list(comments)

    def matches_text(self, text: str) -> bool:
        needle = (text or "").strip().lower()
        if not needle:
            return True
        return needle in (self.title or "").lower() or needle in (self.description or "").lower()

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Issue":
        return cls(
            id=data.get("id"),
            title=data.get("titolo") or "",
            description=data.get("descrizione") or "",
            type=IssueType.parse(data.get("tipologia")),
            priority=Priority.parse(data.get("priorita")),
            state=IssueState.parse(data.get("stato")),
            reporter=User.from_json(data.get("creataDa")),
            image_path=data.get("img"),
        )

    def to_create_request(self) -> Dict[str, Any]:
        """Body for ``POST /issues``; the image travels separately."""
        return {
            "titolo": self.title,
            "descrizione": self.description,
            "tipologia": self.type.name,
            "img": None,
            "priorita": self.priority.name,
            "stato": self.state.name,
        }
