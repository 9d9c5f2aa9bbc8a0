from fastapi import APIRouter, Depends
from adotai.modules.auth.schemas import LoginRequest, SignupRequest, SignupResponse, SigninResponse
from adotai.modules.auth.service import AuthService
from adotai.modules.users.schemas import UserResponse
from adotai.core.dependencies import get_auth_service, get_current_token, get_current_profile

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=SignupResponse, status_code=201)
async def signup(
    signup_data: SignupRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new adopter or advertiser"""
    return service.signup(signup_data)


@router.post("/login", response_model=SigninResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token plus profile"""
    return service.signin(login_data.email, login_data.password)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.signout(token)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
async def get_current_user(profile: UserResponse = Depends(get_current_profile)):
    """Get the profile of the authenticated caller"""
    return profile
