"""Input validation with strong typing."""

from pydantic import BaseModel, Field, field_validator, ConfigDict


# Validation limits
MAX_PROMPT_LENGTH = 10_000


class RequestValidator(BaseModel):
    """Base validator with strict configuration."""

    model_config = ConfigDict(
        strict=True, validate_assignment=True, extra="forbid", frozen=True  # Immutable by default
    )


class GenerationRequest(RequestValidator):
    """Validated UI generation request."""

    prompt: str = Field(min_length=1, max_length=MAX_PROMPT_LENGTH)

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        """Ensure prompt is non-empty after stripping."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Prompt cannot be empty")
        return stripped
