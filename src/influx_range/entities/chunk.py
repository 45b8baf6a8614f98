import pandas as pd
from pydantic import BaseModel, ConfigDict


class ChunkSpec(BaseModel):
    """One bounded sub-range of a requested time range."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    local_start: pd.Timestamp
    local_end: pd.Timestamp
    utc_start: str
    utc_end: str
