"""
Typed views over the loosely-structured O*NET JSON columns.

Imported occupation rows carry nested objects whose shape varies between
import runs.  These models pick out the handful of values the API reads
and drop anything malformed field by field, so a bad wage figure never
hides a good growth rate.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError


class _LenientModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @classmethod
    def parse(cls, raw: Any):
        """Validate *raw*, discarding invalid fields instead of failing."""
        if not isinstance(raw, dict):
            return cls()
        data = dict(raw)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            for error in exc.errors():
                if error["loc"]:
                    data.pop(error["loc"][0], None)
            return cls.model_validate(data)


class Wages(_LenientModel):
    annual_median: Optional[float] = None
    hourly_median: Optional[float] = None


class WorkContext(_LenientModel):
    education_level: Optional[str] = None
    experience_required: Optional[str] = None
    training_required: Optional[str] = None


class Outlook(_LenientModel):
    growth_rate: Optional[Union[float, str]] = None
    annual_openings: Optional[int] = None
