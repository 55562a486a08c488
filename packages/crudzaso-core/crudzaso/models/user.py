"""
User, identity and session models for Crudzaso.

A User is a registered account. A Session is the time-bounded record of
who is signed in, stored under the session key; its Identity part is what
the other services use to scope their work.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional
from uuid import uuid4

from crudzaso.timeutil import parse_datetime, to_iso, utcnow


def normalize_email(email: str | None) -> str:
    """Emails are compared trimmed and case-insensitively."""
    return (email or "").strip().lower()


@dataclass
class User:
    """
    A registered account.

    Attributes:
        id: Unique identifier
        name: Display name
        email: Login email, unique among users (stored normalized)
        password_hash: Salted hash of the password, never the password itself
        role: Role label shown on the profile
        department: Academic department
        join_date: Calendar date the account was created
        registration_date: Instant the account was created
    """

    name: str
    email: str
    password_hash: str
    id: str = field(default_factory=lambda: str(uuid4()))
    role: str = "Student"
    department: str = "General"
    join_date: Optional[date] = None
    registration_date: Optional[datetime] = None

    def __post_init__(self):
        self.email = normalize_email(self.email)
        if self.registration_date is None:
            self.registration_date = utcnow()
        if self.join_date is None:
            self.join_date = self.registration_date.date()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "passwordHash": self.password_hash,
            "role": self.role,
            "department": self.department,
            "joinDate": self.join_date.isoformat() if self.join_date else None,
            "registrationDate": to_iso(self.registration_date),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        join_date = data.get("joinDate")
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            email=data.get("email", ""),
            password_hash=data.get("passwordHash", ""),
            role=data.get("role", "Student"),
            department=data.get("department", "General"),
            join_date=date.fromisoformat(join_date[:10]) if join_date else None,
            registration_date=parse_datetime(data.get("registrationDate")),
        )


@dataclass(frozen=True)
class Identity:
    """The acting user, as seen by task, profile and statistics services."""

    user_id: str
    email: str
    name: str
    role: str = "Student"
    department: str = "General"


@dataclass
class Session:
    """
    An authenticated principal context.

    Valid iff the current time is before `expires`.
    """

    user_id: str
    email: str
    name: str
    role: str
    department: str
    login_time: datetime
    expires: datetime

    @classmethod
    def start(cls, user: User, ttl: timedelta, now: datetime | None = None) -> "Session":
        now = now or utcnow()
        return cls(
            user_id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            department=user.department,
            login_time=now,
            expires=now + ttl,
        )

    @property
    def identity(self) -> Identity:
        return Identity(
            user_id=self.user_id,
            email=self.email,
            name=self.name,
            role=self.role,
            department=self.department,
        )

    def is_valid(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) < self.expires

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "department": self.department,
            "loginTime": to_iso(self.login_time),
            "expires": to_iso(self.expires),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        """
        Rebuild a stored session.

        Raises:
            KeyError, TypeError, ValueError: if the record is malformed
        """
        expires = parse_datetime(data["expires"])
        if expires is None:
            raise ValueError("session has no expiry")
        return cls(
            user_id=str(data["userId"]),
            email=data["email"],
            name=data.get("name", ""),
            role=data.get("role", "Student"),
            department=data.get("department", "General"),
            login_time=parse_datetime(data.get("loginTime")) or expires,
            expires=expires,
        )
