from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from hackmates.constants import ANONYMOUS_NAME


class UserBase(BaseModel):

    email: EmailStr


class UserCreate(UserBase):

    password: str = Field(min_length=6)
    full_name: Optional[str] = None


class UserPublic(UserBase):

    id: str
    full_name: Optional[str] = None


class AuthUser(BaseModel):
    """Identity of a signed-in user as seen by the rest of the app."""

    id: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    onboarding_completed: bool = False


class Token(BaseModel):

    access_token: str
    token_type: str = "bearer"


class Project(BaseModel):

    description: str = ""
    github: str = ""
    deployed: str = ""


def _split_skills(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    return [str(s).strip() for s in value if str(s).strip()]


class UserProfile(BaseModel):

    id: str
    name: str = ANONYMOUS_NAME
    photo_url: Optional[str] = None
    college: Optional[str] = None
    course: Optional[str] = None
    semester: Optional[str] = None
    branch: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    role: Optional[str] = None
    bio: Optional[str] = None
    github: Optional[str] = None
    linked_in: Optional[str] = None
    projects: List[Project] = Field(default_factory=list)
    onboarding_completed: bool = False

    @field_validator("skills", mode="before")
    @classmethod
    def _skills_list(cls, value: Any) -> List[str]:
        # older documents stored skills as one comma separated string
        return _split_skills(value)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "UserProfile":
        return cls(
            id=str(doc["_id"]),
            name=doc.get("name") or doc.get("display_name") or ANONYMOUS_NAME,
            photo_url=doc.get("photo_url") or doc.get("provider_photo_url") or None,
            college=doc.get("college"),
            course=doc.get("course"),
            semester=doc.get("semester"),
            branch=doc.get("branch"),
            skills=doc.get("skills"),
            role=doc.get("role"),
            bio=doc.get("bio"),
            github=doc.get("github"),
            linked_in=doc.get("linked_in"),
            projects=doc.get("projects") or [],
            onboarding_completed=bool(doc.get("onboarding_completed", False)),
        )

    def matches(self, term: str) -> bool:
        term = term.strip().lower()
        if not term:
            return True
        haystacks = [self.name, self.college or "", ", ".join(self.skills)]
        return any(term in h.lower() for h in haystacks)


class ProfileUpdate(BaseModel):
    """Partial edit; only the fields present are written."""

    name: Optional[str] = None
    college: Optional[str] = None
    course: Optional[str] = None
    semester: Optional[str] = None
    branch: Optional[str] = None
    skills: Optional[List[str]] = None
    role: Optional[str] = None
    bio: Optional[str] = None
    github: Optional[str] = None
    linked_in: Optional[str] = None
    projects: Optional[List[Project]] = None

    @field_validator("skills", mode="before")
    @classmethod
    def _skills_list(cls, value: Any) -> Optional[List[str]]:
        return None if value is None else _split_skills(value)


class OnboardingRequest(BaseModel):

    name: str = ""
    college: str = ""
    course: str = ""
    semester: str = ""
    branch: str = ""
    skills: List[str] = Field(default_factory=list)
    role: str = ""
    bio: str = ""
    github: str = ""
    linked_in: str = ""
    projects: List[Project] = Field(default_factory=lambda: [Project()])

    @field_validator("skills", mode="before")
    @classmethod
    def _skills_list(cls, value: Any) -> List[str]:
        return _split_skills(value)


class ProfileOptions(BaseModel):

    colleges: List[str]
    courses: List[str]
    branches: List[str]
    semesters: List[str]
    skills: List[str]
