"""Authentication schemas."""
from pydantic import BaseModel, ConfigDict, Field, StrictInt


class AdminLoginRequest(BaseModel):
    password: str = Field(..., min_length=1, max_length=256)


class TraineeClaims(BaseModel):
    """Claims a trainee bearer token must carry.

    Tokens come from the identity provider, so unknown claims are ignored.
    """
    model_config = ConfigDict(extra="ignore")

    trainee_id: StrictInt = Field(..., gt=0)
