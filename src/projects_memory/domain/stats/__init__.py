# Domain Stats Package
from .models import (
    Candidate,
    GlobalStats,
    ProjectStats,
    ReviewAction,
    ReviewRecord,
    StatsPayload,
)
from .ports import CandidateSource, DocumentStorage

__all__ = [
    "Candidate",
    "GlobalStats",
    "ProjectStats",
    "ReviewAction",
    "ReviewRecord",
    "StatsPayload",
    "CandidateSource",
    "DocumentStorage",
]
