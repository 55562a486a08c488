"""
Extended profile model.

The session only knows name, email, role and department. Everything else
shown on the profile page lives under profile_<userId>.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from crudzaso.models.user import Session
from crudzaso.timeutil import parse_datetime, to_iso, utcnow

DEPARTMENTS = (
    "Computer Science", "Mathematics", "Physics", "Chemistry",
    "Biology", "Literature", "History", "Art", "Music",
    "Engineering", "Business", "Psychology", "Philosophy",
)

ACADEMIC_LEVELS = (
    "High School", "Undergraduate", "Graduate", "PhD",
    "Postdoc", "Professor", "Other",
)

THEMES = ("light", "dark")

# Attributes a user may change from the profile page
EDITABLE_FIELDS = (
    "name",
    "department",
    "academic_level",
    "phone_number",
    "website",
    "bio",
    "timezone",
    "language",
    "theme",
    "working_hours",
    "daily_goal",
    "notifications",
    "social_links",
)


def generate_student_id() -> str:
    return "STU" + str(int(time.time() * 1000))[-6:]


def _default_notifications() -> dict:
    return {"email": True, "push": True, "deadline": True, "daily": False}


@dataclass
class Profile:
    """
    Full profile for one user.

    Attributes:
        user_id: Owner, never editable
        email: Login email, never editable here
        name: Display name
        role: Role label
        department: One of DEPARTMENTS
        academic_level: One of ACADEMIC_LEVELS
        student_id: STU + 6 digits, assigned once
        daily_goal: Target hours of work per day
    """

    user_id: str
    email: str
    name: str
    role: str = "Student"
    department: str = "Computer Science"
    academic_level: str = "Undergraduate"
    student_id: str = field(default_factory=generate_student_id)
    phone_number: str = ""
    bio: str = ""
    website: str = ""
    join_date: Optional[datetime] = None
    last_active: Optional[datetime] = None
    timezone: str = "UTC"
    language: str = "en"
    theme: str = "light"
    working_hours: dict = field(default_factory=lambda: {"start": "09:00", "end": "17:00"})
    daily_goal: float = 4
    notifications: dict = field(default_factory=_default_notifications)
    social_links: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.join_date is None:
            self.join_date = utcnow()

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "department": self.department,
            "academicLevel": self.academic_level,
            "studentId": self.student_id,
            "phoneNumber": self.phone_number,
            "bio": self.bio,
            "website": self.website,
            "joinDate": to_iso(self.join_date),
            "lastActive": to_iso(self.last_active),
            "timezone": self.timezone,
            "language": self.language,
            "theme": self.theme,
            "workingHours": dict(self.working_hours),
            "dailyGoal": self.daily_goal,
            "notifications": dict(self.notifications),
            "socialLinks": dict(self.social_links),
        }

    @classmethod
    def from_session(cls, session: Session, stored: dict | None = None) -> "Profile":
        """
        Merge the session's basic data with stored extended attributes.

        Identity fields always come from the session.
        """
        stored = stored or {}
        profile = cls(
            user_id=session.user_id,
            email=session.email,
            name=stored.get("name") or session.name,
            role=session.role,
            department=stored.get("department") or session.department or "Computer Science",
            academic_level=stored.get("academicLevel") or "Undergraduate",
            student_id=stored.get("studentId") or generate_student_id(),
            phone_number=stored.get("phoneNumber") or "",
            bio=stored.get("bio") or "",
            website=stored.get("website") or "",
            join_date=parse_datetime(stored.get("joinDate")),
            timezone=stored.get("timezone") or "UTC",
            language=stored.get("language") or "en",
            theme=stored.get("theme") or "light",
            daily_goal=stored.get("dailyGoal") or 4,
            social_links=dict(stored.get("socialLinks") or {}),
        )
        if stored.get("workingHours"):
            profile.working_hours = dict(stored["workingHours"])
        if stored.get("notifications"):
            profile.notifications = dict(stored["notifications"])
        return profile
