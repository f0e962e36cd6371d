from pydantic import BaseModel, Field


class PromotionResult(BaseModel):
    queue: str
    delayed: int = Field(default=0, description="Due delayed messages moved to the main queue")
    expired: int = Field(default=0, description="Unacknowledged messages moved back to the main queue")

    @property
    def total(self) -> int:
        return self.delayed + self.expired


class QueueStats(BaseModel):
    queue: str
    active_depth: int = 0
    delayed_depth: int = 0
    in_flight_depth: int = 0
    total_depth: int = 0
