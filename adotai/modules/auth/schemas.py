from pydantic import BaseModel, EmailStr
from typing import Literal

from adotai.modules.users.schemas import UserResponse


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class SignupRequest(BaseModel):
    email: EmailStr
    password: str
    name: str
    type: Literal["adopter", "advertiser"]
    phone: str = ""
    address: str = ""


class SignupResponse(BaseModel):
    user: UserResponse
    message: str = "User registered successfully"


class SigninResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
    is_admin: bool = False
