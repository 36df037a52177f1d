"""Pydantic schemas for the caption endpoint."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class CaptionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_prompt: StrictStr | None = Field(default=None, alias="userPrompt")

    @property
    def prompt(self) -> str | None:
        if self.user_prompt is None or not self.user_prompt.strip():
            return None
        return self.user_prompt


class CaptionResponse(BaseModel):
    caption: str
