# =============================================================================
# core/models/user.py - User Schemas
# =============================================================================
# - UserPublic: The projection of a user shown on account pages
# - UserDataUpdate: The two fields a user may change without the API
# =============================================================================

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class UserPublic(BaseModel):
    """
    Public projection of a user.

    Loaded by the auth gate and returned by the account update.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="_id")
    name: str
    email: str
    photo: str = "default.jpg"
    role: str = "user"

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value):
        return str(value)


class UserDataUpdate(BaseModel):
    """
    Account form submission.

    Example:
        {"name": "Laura Wilson", "email": "laura@example.com"}
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )

    email: EmailStr = Field(
        ...,
        description="Login email (stored lowercase)"
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please tell us your name!")
        return value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()
