"""
Admin API schemas.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel

from pearls.schemas.pearl import PearlResponse
from pearls.schemas.thread import ThreadResponse


class ThreadWithCount(ThreadResponse):
    pearl_count: int = 0


class AdminThreadList(BaseModel):
    threads: List[ThreadWithCount]


class AdminPearlPage(BaseModel):
    thread: ThreadResponse
    pearls: List[PearlResponse]
    limit: int
    offset: int


class AdminStats(BaseModel):
    threads: int
    pearls: int
    timestamp: datetime
