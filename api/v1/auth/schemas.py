from pydantic import BaseModel
from typing import Optional

# -----------------------------
#  Identity provider principal
# -----------------------------

class Principal(BaseModel):
    """Authenticated identity asserted by the identity provider."""
    sub: str
    email: Optional[str] = None
    email_verified: bool = False
    name: Optional[str] = None
    nickname: Optional[str] = None

    class Config:
        extra = "allow"

    @property
    def display_name(self) -> Optional[str]:
        return self.name or self.nickname or None

    @classmethod
    def from_claims(cls, claims: dict) -> "Principal":
        return cls(**claims)

# -----------------------------
#  Responses
# -----------------------------

class WhoAmIOut(BaseModel):
    authenticated: bool
    user: dict

class MessageOut(BaseModel):
    success: bool
    message: str
