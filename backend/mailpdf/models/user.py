"""
User-related Pydantic models.
"""
from pydantic import BaseModel, ConfigDict, Field


class ProfileResponse(BaseModel):
    """Gmail account profile response."""
    model_config = ConfigDict(populate_by_name=True)

    email_address: str = Field("", alias="emailAddress")
