# model/summary.py
from typing import List
from pydantic import BaseModel, Field, field_validator, model_validator


class SummaryResult(BaseModel):
    url: str
    title: str
    tldr: List[str] = Field(min_length=3, max_length=5)
    summary: str
    usedSources: List[str] = Field(min_length=1)

    @field_validator("summary")
    @classmethod
    def _summary_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("summary must not be empty")
        return v

    @model_validator(mode="after")
    def _page_is_first_source(self) -> "SummaryResult":
        if self.usedSources[0] != self.url:
            raise ValueError("usedSources must start with the page URL")
        return self
