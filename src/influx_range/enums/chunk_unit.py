from enum import Enum


class ChunkUnit(str, Enum):
    """Calendar units a requested range is split into."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
