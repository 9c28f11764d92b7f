"""Models for generative-model suitability verdicts."""

from pydantic import BaseModel, ConfigDict, Field

from diabite.domain.decisions import Suitability


class AiVerdict(BaseModel):
    """Structured verdict returned by the generative model."""

    model_config = ConfigDict(populate_by_name=True)

    category: Suitability
    reason: str
    safe_portion: str = Field(alias="safePortion")
    alternatives: list[str]
