from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from hackmates.schemas.user import AuthUser, Token, UserCreate, UserPublic
from hackmates.services.auth_service import IdentityProvider
from hackmates.utils.dependencies import get_current_user, get_identity, oauth2_scheme


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, identity: IdentityProvider = Depends(get_identity)):
    return await identity.register(payload.email, payload.password, payload.full_name)


@router.post("/login", response_model=Token)
async def login(form: OAuth2PasswordRequestForm = Depends(), identity: IdentityProvider = Depends(get_identity)):
    # OAuth2 form calls the email field "username"
    token, _ = await identity.sign_in(form.username, form.password)
    return token


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(token: str = Depends(oauth2_scheme), identity: IdentityProvider = Depends(get_identity)):
    await identity.sign_out(token)


@router.get("/me", response_model=AuthUser)
async def me(current_user: AuthUser = Depends(get_current_user)):
    return current_user
