from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile

from hackmates.database.blob_store import BlobStore
from hackmates.repositories.user_repository import UserRepository
from hackmates.schemas.user import AuthUser, OnboardingRequest, ProfileOptions, ProfileUpdate, UserProfile
from hackmates.services.profile_service import ProfileService
from hackmates.utils.dependencies import get_blob_store, get_current_user, get_user_repository


router = APIRouter(tags=["profiles"])


def get_profile_service(
    users: UserRepository = Depends(get_user_repository),
    blobs: BlobStore = Depends(get_blob_store),
) -> ProfileService:
    return ProfileService(users, blobs)


@router.get("/profiles/options", response_model=ProfileOptions)
async def profile_options():
    return ProfileService.options()


@router.get("/profiles/me", response_model=UserProfile)
async def my_profile(current_user: AuthUser = Depends(get_current_user), service: ProfileService = Depends(get_profile_service)):
    return await service.get_profile(current_user.id)


@router.put("/profiles/me", response_model=UserProfile)
async def update_my_profile(
    payload: ProfileUpdate,
    current_user: AuthUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.update_profile(current_user.id, payload)


@router.post("/profiles/me/onboarding", response_model=UserProfile)
async def onboarding(
    payload: OnboardingRequest,
    current_user: AuthUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.complete_onboarding(current_user.id, payload)


@router.post("/profiles/me/photo", response_model=UserProfile)
async def upload_photo(
    photo: UploadFile = File(...),
    current_user: AuthUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    data = await photo.read()
    return await service.upload_photo(current_user.id, data, photo.content_type)


@router.get("/profiles/{user_id}", response_model=UserProfile)
async def get_profile(user_id: str, current_user: AuthUser = Depends(get_current_user), service: ProfileService = Depends(get_profile_service)):
    return await service.get_profile(user_id)


@router.get("/discover", response_model=List[UserProfile])
async def discover(
    q: Optional[str] = None,
    current_user: AuthUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.discover(current_user.id, q)
