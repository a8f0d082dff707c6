from typing import Optional

from pydantic import BaseModel


class Identity(BaseModel):
    """Caller identity as supplied by the auth layer in front of the storefront."""

    user_id: str
    email: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    picture: Optional[str] = None
