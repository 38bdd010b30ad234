"""Assistant CLI config.json models."""

from pydantic import BaseModel, ConfigDict, Field


class CheckpointConfig(BaseModel):
    """Conversation checkpoint settings."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    auto: bool = Field(default=False, description="Create checkpoints automatically")
    threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Context usage ratio that triggers a checkpoint",
    )
    checkpoint_dir: str | None = Field(
        default=None,
        alias="checkpointDir",
        description="Directory checkpoints are written to",
    )


class AssistantConfig(BaseModel):
    """Main assistant configuration model."""

    model_config = ConfigDict(extra="allow")

    checkpoint: CheckpointConfig = Field(
        default_factory=CheckpointConfig,
        description="Checkpoint settings",
    )
