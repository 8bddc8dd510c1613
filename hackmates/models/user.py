from typing import List, Optional, TypedDict


class ProjectDocument(TypedDict, total=False):
    description: str
    github: str
    deployed: str


class UserDocument(TypedDict, total=False):

    _id: str
    email: str
    hashed_password: str
    # set at registration, `name` from onboarding takes precedence
    display_name: Optional[str]
    provider_photo_url: Optional[str]
    name: Optional[str]
    photo_url: Optional[str]
    college: Optional[str]
    course: Optional[str]
    semester: Optional[str]
    branch: Optional[str]
    skills: List[str]
    role: Optional[str]
    bio: Optional[str]
    github: Optional[str]
    linked_in: Optional[str]
    projects: List[ProjectDocument]
    onboarding_completed: bool
