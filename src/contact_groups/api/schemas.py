"""Pydantic request/response models for the group generation API.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AutoGenerateOptions(_CamelModel):
    # Range checks happen in validate_options so they surface as 400s.
    group_by_company: bool = True
    group_by_location: bool = True
    group_by_events: bool = True
    group_by_time: bool = True
    min_group_size: int = 2
    max_groups: int = 50
    enhanced_event_detection: bool = False


class AutoGenerateRequest(_CamelModel):
    options: AutoGenerateOptions = Field(default_factory=AutoGenerateOptions)


class AutoGenerateResponse(_CamelModel):
    success: bool = True
    groups_created: int = 0
    new_groups: list[dict] | None = None
    analytics: dict | None = None
    message: str
