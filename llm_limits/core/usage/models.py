from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

# Numeric percentage: ints and floats only, bools and numeric strings rejected.
Percent = Annotated[float, Field(strict=True, allow_inf_nan=False)]


class ShapeModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CodexWindow(ShapeModel):
    used_percent: Percent
    reset_at: Any = None
    resets_at: Any = None


class CodexRateLimit(ShapeModel):
    primary_window: CodexWindow
    secondary_window: Any = None


class CodexRateLimitPayload(ShapeModel):
    rate_limit: CodexRateLimit


class FiveHourLimit(ShapeModel):
    remaining_percent: Percent


class LegacyFiveHourPayload(ShapeModel):
    five_hour_limit: FiveHourLimit


class GenericUsage(ShapeModel):
    percent: Percent


class GenericUsagePayload(ShapeModel):
    usage: GenericUsage


class ClaudeWindow(ShapeModel):
    utilization: Percent
    resets_at: Any = None
    reset_at: Any = None


class ClaudeWebUsagePayload(ShapeModel):
    five_hour: ClaudeWindow


class ClaudeOrganization(ShapeModel):
    uuid: str = Field(min_length=1)
