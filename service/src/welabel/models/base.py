"""Shared pydantic base for recorded data."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RecordModel(BaseModel):
    """
    Immutable record with camelCase wire names.

    Python code uses snake_case attributes; JSON uses camelCase
    (``clickCount``, ``imageFileName``). Both spellings are accepted
    on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        allow_inf_nan=False,
    )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dict using wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True)
