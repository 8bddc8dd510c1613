from typing import Dict, List, Optional
from urllib.parse import urlparse

from loguru import logger

from hackmates import constants
from hackmates.database.blob_store import BlobStore
from hackmates.errors import NotFoundError, ValidationError
from hackmates.repositories.user_repository import UserRepository
from hackmates.schemas.user import OnboardingRequest, ProfileOptions, ProfileUpdate, UserProfile


def is_valid_url(url: str) -> bool:
    parsed = urlparse(url)
    return bool(parsed.scheme and parsed.netloc)


def is_valid_github_url(url: str) -> bool:
    return url == "" or (is_valid_url(url) and "github.com" in url.lower())


def is_valid_linkedin_url(url: str) -> bool:
    return url == "" or (is_valid_url(url) and "linkedin.com" in url.lower())


def validate_onboarding(data: OnboardingRequest) -> Dict[str, str]:
    """Collect every problem with an onboarding submission, keyed by field."""
    errors: Dict[str, str] = {}

    # basic info
    if not data.name.strip():
        errors["name"] = "Name is required"
    elif len(data.name.strip()) < constants.MIN_NAME_LENGTH:
        errors["name"] = f"Name must be at least {constants.MIN_NAME_LENGTH} characters"
    for field in ("college", "course", "semester", "branch"):
        if not getattr(data, field).strip():
            errors[field] = f"{field.capitalize()} is required"

    # about
    if not data.bio.strip():
        errors["bio"] = "Bio is required"
    elif len(data.bio) > constants.MAX_BIO_LENGTH:
        errors["bio"] = f"Bio must not exceed {constants.MAX_BIO_LENGTH} characters"
    if not data.skills:
        errors["skills"] = "Please select at least one skill"
    if data.github and not is_valid_github_url(data.github):
        errors["github"] = "Please enter a valid GitHub URL"
    if data.linked_in and not is_valid_linkedin_url(data.linked_in):
        errors["linked_in"] = "Please enter a valid LinkedIn URL"
    if not data.role.strip():
        errors["role"] = "Please select your primary role"

    # projects
    for index, project in enumerate(data.projects):
        prefix = f"projects.{index}"
        if not project.description.strip():
            errors[f"{prefix}.description"] = "Project description is required"
        elif len(project.description) > constants.MAX_PROJECT_DESCRIPTION_LENGTH:
            errors[f"{prefix}.description"] = (
                f"Description must not exceed {constants.MAX_PROJECT_DESCRIPTION_LENGTH} characters"
            )
        if not project.github.strip():
            errors[f"{prefix}.github"] = "GitHub repository URL is required"
        elif not is_valid_github_url(project.github):
            errors[f"{prefix}.github"] = "Please enter a valid GitHub URL"
        if project.deployed and not is_valid_url(project.deployed):
            errors[f"{prefix}.deployed"] = "Please enter a valid URL"

    return errors


class ProfileService:

    def __init__(self, users: UserRepository, blobs: Optional[BlobStore] = None) -> None:
        self._users = users
        self._blobs = blobs

    @staticmethod
    def options() -> ProfileOptions:
        return ProfileOptions(
            colleges=constants.COLLEGES,
            courses=constants.COURSES,
            branches=constants.BRANCHES,
            semesters=constants.SEMESTERS,
            skills=constants.SKILLS,
        )

    async def get_profile(self, user_id: str) -> UserProfile:
        profile = await self._users.get_profile(user_id)
        if profile is None:
            raise NotFoundError("User not found")
        return profile

    async def update_profile(self, user_id: str, update: ProfileUpdate) -> UserProfile:
        fields = update.model_dump(exclude_none=True)
        if "name" in fields and not fields["name"].strip():
            raise ValidationError("Name cannot be empty", fields={"name": "Name is required"})
        profile = await self._users.update_profile(user_id, fields)
        if profile is None:
            raise NotFoundError("User not found")
        return profile

    async def complete_onboarding(self, user_id: str, data: OnboardingRequest) -> UserProfile:
        errors = validate_onboarding(data)
        if errors:
            raise ValidationError("Please fix the highlighted fields", fields=errors)
        fields = data.model_dump()
        fields["name"] = data.name.strip()
        fields["onboarding_completed"] = True
        profile = await self._users.update_profile(user_id, fields)
        if profile is None:
            raise NotFoundError("User not found")
        logger.info("user {} completed onboarding", user_id)
        return profile

    async def upload_photo(self, user_id: str, data: bytes, content_type: Optional[str]) -> UserProfile:
        if content_type not in constants.ALLOWED_PHOTO_TYPES:
            raise ValidationError(
                "Please upload a valid image file (JPEG, JPG, or PNG)",
                fields={"photo": "Unsupported image type"},
            )
        if len(data) > constants.MAX_PHOTO_SIZE:
            raise ValidationError("Image size should be less than 5MB", fields={"photo": "Image too large"})
        if self._blobs is None:
            raise RuntimeError("ProfileService was built without a blob store")
        ref = await self._blobs.upload(f"profile-photos/{user_id}", data, content_type)
        return await self.update_profile_photo(user_id, self._blobs.get_download_url(ref))

    async def update_profile_photo(self, user_id: str, photo_url: str) -> UserProfile:
        profile = await self._users.update_profile(user_id, {"photo_url": photo_url})
        if profile is None:
            raise NotFoundError("User not found")
        return profile

    async def discover(self, user_id: str, q: Optional[str] = None) -> List[UserProfile]:
        profiles = await self._users.list_profiles(exclude_id=user_id)
        if q:
            profiles = [p for p in profiles if p.matches(q)]
        return profiles
