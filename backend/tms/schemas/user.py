from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from tms.models.user import Role

class UserCredentials(BaseModel):
    username: str = Field(..., min_length=1, max_length=150)
    password: str = Field(..., min_length=1)

class UserSummary(BaseModel):
    id: int
    username: str
    role: Role

    class Config:
        from_attributes = True

class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role
    user: UserSummary

    class Config:
        alias_generator = to_camel
        populate_by_name = True

class Token(BaseModel):
    access_token: str
    token_type: str
