"""Story and continuation models mirrored from the backend.

The client never mutates these: they are frozen and replaced wholesale on
every refresh. Wire records use camelCase and nanosecond timestamps.
"""

from datetime import datetime, timezone
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

NANOS_PER_SECOND = 1_000_000_000


def parse_nanos(value):
    """Convert a nanosecond epoch integer to an aware datetime; pass datetimes through."""
    if isinstance(value, bool):
        raise ValueError("timestamp must be an integer number of nanoseconds")
    if isinstance(value, int):
        seconds, nanos = divmod(value, NANOS_PER_SECOND)
        try:
            parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"timestamp {value} is out of range: {e}") from e
        return parsed.replace(microsecond=nanos // 1000)
    return value


class Continuation(BaseModel):
    """A candidate extension to a story, subject to voting."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(ge=0)
    content: str
    author: str
    created_at: datetime = Field(alias="timestamp")
    votes: int = Field(default=0, ge=0)
    voters: Tuple[str, ...] = ()

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, value):
        return parse_nanos(value)

    @field_validator("voters")
    @classmethod
    def voters_unique(cls, voters: Tuple[str, ...]) -> Tuple[str, ...]:
        if len(set(voters)) != len(voters):
            raise ValueError("a principal may vote at most once per continuation")
        return voters

    @model_validator(mode="after")
    def votes_match_voters(self) -> "Continuation":
        if self.votes != len(self.voters):
            raise ValueError(
                f"continuation {self.id}: votes={self.votes} but {len(self.voters)} voters"
            )
        return self


class Story(BaseModel):
    """A root narrative unit with its candidate continuations."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(ge=0)
    title: str
    introduction: str
    author: str
    created_at: datetime = Field(alias="timestamp")
    continuations: Tuple[Continuation, ...] = ()
    selected_continuations: Tuple[int, ...] = Field(
        default=(), alias="selectedContinuations"
    )

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, value):
        return parse_nanos(value)

    @model_validator(mode="after")
    def selections_reference_continuations(self) -> "Story":
        known = {c.id for c in self.continuations}
        missing = [cid for cid in self.selected_continuations if cid not in known]
        if missing:
            raise ValueError(
                f"story {self.id}: selected continuations {missing} are not in its continuations"
            )
        return self

    def get_continuation(self, continuation_id: int) -> Optional[Continuation]:
        for continuation in self.continuations:
            if continuation.id == continuation_id:
                return continuation
        return None

    @property
    def selected(self) -> Tuple[Continuation, ...]:
        """Selected continuations in selection order (the canonical extended story)."""
        by_id = {c.id: c for c in self.continuations}
        return tuple(by_id[cid] for cid in self.selected_continuations)


class StoryDraft(BaseModel):
    """Uncommitted title/introduction pair for story creation."""

    title: str = ""
    introduction: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.title.strip()) and bool(self.introduction.strip())
