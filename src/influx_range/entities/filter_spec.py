from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class FilterSpec(BaseModel):
    """Measurement, field and tag constraints of one query."""
    measurement: str
    fields: Optional[List[str]] = None
    tags: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("tags", mode="before")
    @classmethod
    def _wrap_scalar_tag_values(
        cls, value: Optional[Dict[str, Union[str, List[str]]]]
    ) -> Dict[str, List[str]]:
        if value is None:
            return {}
        return {
            key: [values] if isinstance(values, str) else list(values)
            for key, values in value.items()
        }
