
from pydantic import BaseModel, ConfigDict, EmailStr, Field

class SignupIn(BaseModel):
    email: EmailStr
    password: str
    confirm_password: str
    is_issuer: bool = False
    full_name: str | None = Field(default=None, max_length=255)
    institution_name: str | None = Field(default=None, max_length=255)

class LoginIn(BaseModel):
    email: str
    password: str

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str
    role: str
