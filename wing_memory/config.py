"""
Configuration management for the Wing memory engine.

Provides centralized configuration for:
- Deduplication thresholds
- Retrieval budgets
- Storage location
- Feature toggles mirrored from the app settings
"""

import json
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class DeduplicationConfig(BaseModel):
    """Thresholds used by insert-time dedup and batch grouping."""

    episodic_similarity_threshold: float = Field(
        default=0.45,
        description="Minimum event similarity for two same-day episodes to match",
        ge=0.0,
        le=1.0,
    )
    procedural_similarity_threshold: float = Field(
        default=0.55,
        description="Minimum pattern similarity for two procedural memories to match",
        ge=0.0,
        le=1.0,
    )
    procedural_trigger_threshold: float = Field(
        default=0.3,
        description="Minimum trigger similarity, checked only when both sides have a trigger",
        ge=0.0,
        le=1.0,
    )
    semantic_confidence_boost: float = Field(
        default=0.1,
        description="Confidence added when a semantic fact is reinforced",
        ge=0.0,
        le=1.0,
    )
    min_content_chars: int = Field(
        default=2,
        description="Episodic and procedural candidates shorter than this are rejected",
        ge=0,
    )


class RetrievalConfig(BaseModel):
    """Configuration for prompt-context retrieval."""

    min_total_memories: int = Field(
        default=100,
        description="Retrieval is skipped while the store holds fewer memories than this",
        ge=0,
    )
    default_budget: int = Field(
        default=10,
        description="Default number of memories injected into one generation",
        ge=0,
    )
    category_shares: dict[str, float] = Field(
        default={"semantic": 0.4, "episodic": 0.3, "procedural": 0.3},
        description="Share of the budget reserved for each memory category",
    )
    redistribute_unused: bool = Field(
        default=False,
        description="Give quota left over by a sparse category to the others",
    )

    @field_validator("category_shares")
    @classmethod
    def _check_shares(cls, value: dict[str, float]) -> dict[str, float]:
        known = {"semantic", "episodic", "procedural"}
        unknown = set(value) - known
        if unknown:
            raise ValueError(f"Unknown memory categories: {sorted(unknown)}")
        if any(share < 0 for share in value.values()):
            raise ValueError("Category shares must be non-negative")
        if value and sum(value.values()) <= 0:
            raise ValueError("At least one category share must be positive")
        return value


class StorageConfig(BaseModel):
    """Configuration for the persistence backend."""

    sqlite_path: Path = Field(
        default=Path("./data/wing_memory.db"),
        description="Path to SQLite database file",
    )


class FeatureFlags(BaseModel):
    """Memory feature toggles, as exposed in the app settings screen."""

    enable_long_term_memory: bool = Field(
        default=False,
        description="Master switch for extracting and storing memories",
    )
    memory_extraction_auto: bool = Field(
        default=True,
        description="Extract memories automatically after each journal synthesis",
    )
    memory_retrieval_enabled: bool = Field(
        default=False,
        description="Inject stored memories into the journal generation prompt",
    )


class MemoryConfig(BaseModel):
    """Master configuration for the memory engine."""

    dedup: DeduplicationConfig = Field(default_factory=DeduplicationConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    features: FeatureFlags = Field(default_factory=FeatureFlags)

    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    @classmethod
    def from_file(cls, path: Path) -> "MemoryConfig":
        """Load configuration from a JSON file."""
        path = Path(path)
        if path.suffix != ".json":
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return cls.model_validate(data)

    def to_file(self, path: Path) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)
