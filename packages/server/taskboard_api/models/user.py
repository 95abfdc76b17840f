"""User profile model (owned by the users service, read here for author summaries)."""

from typing import Optional

from sqlmodel import Field, SQLModel


class UserProfile(SQLModel, table=True):
    __tablename__ = "user_profiles"

    id: str = Field(primary_key=True, max_length=100)
    full_name: str = Field(nullable=False)
    email: str = Field(nullable=False, index=True)
    avatar: Optional[str] = None
    profile_image: Optional[str] = None
