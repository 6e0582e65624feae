# ABOUTME: Configuration settings for the agent turn orchestrator using Pydantic Settings.
# ABOUTME: Loads environment variables and exposes turn pacing/timeout values as a TurnTiming model.

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TurnTiming(BaseModel):
    """Fixed delays (milliseconds) used by the turn protocol"""

    pacing_delay_ms: int = Field(default=2000, ge=0)
    notice_duration_ms: int = Field(default=1500, ge=0)
    negotiation_delay_ms: int = Field(default=600, ge=0)
    visual_sync_delay_ms: int = Field(default=200, ge=0)
    finalize_timeout_ms: int = Field(default=10000, gt=0)
    human_answer_timeout_ms: int = Field(default=30000, gt=0)

    model_config = {"frozen": True}


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    # Redis Configuration
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL for the shared state store"
    )
    redis_connect_attempts: int = Field(
        default=5,
        description="Connection attempts before the host gives up"
    )

    # Room / host identity
    room_id: str = Field(
        default="room_001",
        description="Room governed by this orchestrator instance"
    )
    host_id: str = Field(
        default="host_001",
        description="Identity written into the orchestrator lease"
    )
    roster_path: str = Field(
        default="config/roster.json",
        description="Seat assignment output (agent roster JSON)"
    )

    # Application Settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (None = logs/)"
    )

    # Turn protocol timing (milliseconds)
    pacing_delay_ms: int = Field(
        default=2000,
        description="Delay inserted between consecutive turn steps"
    )
    notice_duration_ms: int = Field(
        default=1500,
        description="How long a speech notice is shown before the roll"
    )
    negotiation_delay_ms: int = Field(
        default=600,
        description="Perceive/consider latency inside green negotiation"
    )
    visual_sync_delay_ms: int = Field(
        default=200,
        description="Minimum delay between finalize event and visible mutation"
    )
    finalize_timeout_ms: int = Field(
        default=10000,
        description="Maximum wait for a dice/animation finalize event"
    )
    human_answer_timeout_ms: int = Field(
        default=30000,
        description="Maximum wait for a human negotiation answer"
    )
    dice_animation_ms: int = Field(
        default=1200,
        description="Animation length emulated by the local dice engine"
    )

    # Host runner
    lease_ttl_ms: int = Field(
        default=15000,
        description="Orchestrator lease time-to-live"
    )
    turn_poll_interval_ms: int = Field(
        default=250,
        description="How often the host checks the turn owner"
    )
    use_local_dice: bool = Field(
        default=True,
        description="Roll dice in-process instead of waiting for an animation client"
    )
    random_seed: int | None = Field(
        default=None,
        description="Seed for the orchestrator's random source (None = unseeded)"
    )
    reset_room_on_start: bool = Field(
        default=False,
        description="Wipe the room's store keys and deal fresh decks at startup"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def timing(self) -> TurnTiming:
        """Collect the protocol delays into a TurnTiming"""
        return TurnTiming(
            pacing_delay_ms=self.pacing_delay_ms,
            notice_duration_ms=self.notice_duration_ms,
            negotiation_delay_ms=self.negotiation_delay_ms,
            visual_sync_delay_ms=self.visual_sync_delay_ms,
            finalize_timeout_ms=self.finalize_timeout_ms,
            human_answer_timeout_ms=self.human_answer_timeout_ms,
        )


# Singleton settings instance - lazy initialization to allow import without .env
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the singleton settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
