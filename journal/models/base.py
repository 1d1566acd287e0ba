"""Shared base for persisted journal records."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class JournalRecord(BaseModel):
    """Base for every persisted record: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Dump to the JSON shape used by the local store, remote row and exports."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def coerce_date_only(v: object) -> object:
    """Accept bare ``YYYY-MM-DD`` strings for datetime fields."""
    if isinstance(v, str) and len(v.strip()) == 10:
        return f"{v.strip()}T00:00:00"
    return v
