from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator


class VehicleInfo(BaseModel):
    make: str = Field(description="Vehicle manufacturer, e.g. Toyota")
    model: str = Field(description="Vehicle model, e.g. Camry")
    color: str = Field(description="Primary exterior color of the vehicle")


class CostEstimate(BaseModel):
    min: float = Field(ge=0, description="Lower bound of repair cost estimate in USD")
    max: float = Field(ge=0, description="Upper bound of repair cost estimate in USD")
    currency: Literal["USD"] = "USD"

    @model_validator(mode="after")
    def check_bounds(self) -> "CostEstimate":
        if self.min > self.max:
            raise ValueError(f"cost estimate min ({self.min}) exceeds max ({self.max})")
        return self


class DamageAssessment(BaseModel):
    vehicle: VehicleInfo
    damage_summary: str = Field(
        description="Detailed description of all visible damage including affected panels, "
        "severity, and any safety concerns"
    )
    cost_estimate: CostEstimate


class Assessed(BaseModel):
    status: Literal["assessed"] = "assessed"
    assessment: DamageAssessment
    assessed_at: str


class Failed(BaseModel):
    status: Literal["failed"] = "failed"
    reason: str

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("failure reason must not be empty")
        return v


class Pending(BaseModel):
    status: Literal["pending"] = "pending"


AssessmentOutcome = Annotated[Union[Assessed, Failed, Pending], Field(discriminator="status")]
