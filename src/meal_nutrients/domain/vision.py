"""Models for vision recognition results."""

from pydantic import BaseModel, ConfigDict, Field


class ConceptCandidate(BaseModel):
    """Labeled visual concept with the provider's confidence."""

    model_config = ConfigDict(frozen=True)

    name: str
    confidence: float = Field(ge=0.0, le=1.0)


class Recognition(BaseModel):
    """Concepts recognized in one image."""

    image_id: str | None = None
    concepts: list[ConceptCandidate]

    def top_confidence(self) -> float:
        """Return the highest concept confidence, or 0 when none."""
        return max((concept.confidence for concept in self.concepts), default=0.0)
