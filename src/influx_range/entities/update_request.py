from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..enums.chunk_unit import ChunkUnit


class UpdateRequest(BaseModel):
    """Incremental update of cached measurements."""
    measurements: List[str] = Field(min_length=1)
    end: Optional[str] = None
    chunk_by: Optional[ChunkUnit] = None
    fields: Optional[List[str]] = None
    tags: Dict[str, List[str]] = Field(default_factory=dict)


class UpdateSummary(BaseModel):
    """Rows downloaded per measurement by an update."""
    rows: Dict[str, int]
    total_rows: int
