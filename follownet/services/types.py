from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime


class Account(BaseModel):
    """An account returned by the users search API."""

    user_id: str  # kept as text, numeric ids overflow float precision
    screen_name: str
    name: str = ""
    description: str = ""
    followers_count: int = 0
    friends_count: int = 0
    statuses_count: int = 0
    url: Optional[str] = None
    location: Optional[str] = None
    lang: Optional[str] = None
    created_at: Optional[datetime] = None


class AccountCodes(BaseModel):
    """Manually coded categories for one account."""

    user_id: str
    type1: str = ""  # "individual" or "organization"
    type2: str = ""  # e.g. "scientist", "outreach", "CS_project"
    field: str = ""  # e.g. "DIY", "conservation"
    gender: str = ""  # "male", "female" or "unknown"

    @field_validator("user_id")
    @classmethod
    def user_id_is_numeric(cls, value: str) -> str:
        # spreadsheets turn long ids into "8.1596E+17"
        if not value.isdigit():
            raise ValueError(f"user_id {value!r} is not a numeric id")
        return value


class FollowerLink(BaseModel):
    """Directed edge: source follows target."""

    source: str
    target: str


class FollowerIds(BaseModel):
    """Follower ids fetched for one account."""

    user_id: str
    ids: List[str] = []
    truncated: bool = False  # stopped at the per-account cap


class RateLimitStatus(BaseModel):
    """Remaining calls in the current rate-limit window of one endpoint."""

    limit: int
    remaining: int
    reset: float  # epoch seconds when the window resets

    def seconds_until_reset(self, now: float) -> float:
        return max(0.0, self.reset - now)


class LinkCollectionReport(BaseModel):
    """Outcome of a follower-link collection run."""

    processed: int = 0
    skipped: int = 0  # accounts without followers, no request made
    failed: List[str] = []
    truncated: List[str] = []
    links: int = 0
    elapsed_seconds: float = 0.0
    started_at: datetime = Field(default_factory=datetime.utcnow)
