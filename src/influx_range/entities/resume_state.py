from typing import Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict


class ResumeState(BaseModel):
    """Resume point of one measurement, derived fresh on every update."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    measurement: str
    last_instant: Optional[pd.Timestamp] = None
