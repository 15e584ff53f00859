import enum

from pydantic import Field

from fleetops.schemas._base import ApiModel


class Role(str, enum.Enum):
    MANAGER = "MANAGER"
    DISPATCHER = "DISPATCHER"
    SAFETY_OFFICER = "SAFETY_OFFICER"
    FINANCIAL_ANALYST = "FINANCIAL_ANALYST"


class LoginIn(ApiModel):
    email: str = Field(min_length=3, max_length=254)
    password: str


class UserOut(ApiModel):
    id: int
    email: str
    role: Role


class LoginOut(ApiModel):
    token: str
    user: UserOut
