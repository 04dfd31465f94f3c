import datetime as dt
from typing import List, Dict, Literal, Optional
from pydantic import BaseModel, Field, AliasChoices, ConfigDict, field_validator, model_validator

BudgetTier = Literal["budget", "mid-range", "luxury"]
PaceTier = Literal["relaxed", "moderate", "active"]

# ------- Request models -------
class TripRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    destination: str = Field(..., min_length=1)
    start_date: dt.date = Field(..., validation_alias=AliasChoices("start_date", "startDate"))
    end_date: dt.date = Field(..., validation_alias=AliasChoices("end_date", "endDate"))
    interests: List[str] = Field(default_factory=list)
    budget: BudgetTier = Field("mid-range", validation_alias=AliasChoices("budget", "budget_tier", "budgetTier"))
    pace: PaceTier = Field("moderate", validation_alias=AliasChoices("pace", "pace_tier", "paceTier"))

    @field_validator("destination")
    @classmethod
    def _strip_destination(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("destination must not be blank")
        return value

    @field_validator("interests")
    @classmethod
    def _dedupe_interests(cls, value: List[str]) -> List[str]:
        seen: List[str] = []
        for item in value:
            item = item.strip()
            if item and item not in seen:
                seen.append(item)
        return seen

    @model_validator(mode="after")
    def _check_range(self) -> "TripRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    @property
    def span_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def day_date(self, index: int) -> dt.date:
        return self.start_date + dt.timedelta(days=index)

# ------- Draft models -------
class ActivitySlot(BaseModel):
    time: str
    name: str = Field(..., max_length=200)
    location: str = Field(..., max_length=200)
    duration: str
    cost: int = Field(0, ge=0)
    notes: str = Field("", max_length=200)

class DayPlan(BaseModel):
    date: dt.date
    activities: List[ActivitySlot] = Field(default_factory=list)

class ItineraryDraft(BaseModel):
    days: List[DayPlan] = Field(default_factory=list)

# ------- Photo models -------
class Photo(BaseModel):
    url: str
    thumbnail_url: str
    alt_text: str = ""
    photographer_name: str = ""
    photographer_profile_url: Optional[str] = None
    source_provider_id: str
    provider_photo_id: str = ""

class EnrichedActivity(ActivitySlot):
    photos: List[Photo] = Field(default_factory=list)
    main_photo: Optional[Photo] = None

class EnrichedDay(BaseModel):
    date: dt.date
    theme_image: Optional[Photo] = None
    activities: List[EnrichedActivity] = Field(default_factory=list)

class PhotoStats(BaseModel):
    total_photo_count: int = 0
    generated_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
    per_provider_call_counts: Dict[str, int] = Field(default_factory=dict)
    last_error: Optional[str] = None

class EnrichedItinerary(BaseModel):
    destination: str
    title: str
    provider: Literal["openai", "mock"] = "mock"
    ai_generated: bool = False
    days: List[EnrichedDay] = Field(default_factory=list)
    hero_image: Optional[Photo] = None
    has_photos: bool = False
    photo_error: Optional[str] = None
    photo_stats: PhotoStats = Field(default_factory=PhotoStats)

    def to_draft(self) -> ItineraryDraft:
        """Strip photo data, e.g. before regenerating photos for a stored itinerary."""
        return ItineraryDraft(
            days=[
                DayPlan(
                    date=day.date,
                    activities=[
                        ActivitySlot(**activity.model_dump(include=set(ActivitySlot.model_fields)))
                        for activity in day.activities
                    ],
                )
                for day in self.days
            ]
        )
