from enum import Enum


class ResumeSource(str, Enum):
    """Where the last known data point of a measurement is looked up."""
    CACHE = "cache"
    DATASET = "dataset"
