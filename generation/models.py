"""Image generation Pydantic models."""
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator


class LoraWeight(BaseModel):
    model: str = Field(..., min_length=1, description="LoRA model identifier")
    weight: float = Field(1.0, description="LoRA blend weight")


class GenerateRequest(BaseModel):
    """
    Body of POST /api/generate.

    prompt and model are optional here so the route can answer a missing one
    with a 400 and a readable message rather than a schema error.
    """
    prompt: Optional[str] = None
    model: Optional[str] = Field(None, description="Vendor model identifier, e.g. runware:101@1")
    width: int = Field(512, gt=0)
    height: int = Field(512, gt=0)
    steps: int = Field(30, gt=0)
    cfg_scale: float = Field(7.5, gt=0)
    number_results: int = Field(1, gt=0)
    negative_prompt: str = ""
    loras: List[LoraWeight] = Field(default_factory=list)

    @field_validator("width", "height", "steps", "cfg_scale", "number_results", mode="before")
    @classmethod
    def _default_when_empty(cls, value, info):
        # The WebApp sends 0/null for untouched controls
        if value is None or value == 0 or value == "":
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("negative_prompt", mode="before")
    @classmethod
    def _empty_negative_prompt(cls, value):
        return value or ""

    @field_validator("loras", mode="before")
    @classmethod
    def _empty_loras(cls, value):
        return value or []


class GenerateResponse(BaseModel):
    images: List[str]
