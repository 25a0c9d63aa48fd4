"""Configuration dataclasses for runtime components."""

from dataclasses import dataclass

from glove.constants import DEFAULT_COMPACTION_CONTEXT_LIMIT, DEFAULT_MAX_TURNS


@dataclass(frozen=True)
class CompactionConfig:
    """Configuration for automatic history compaction.

    Attributes:
        compaction_instructions: Prompt sent to the model to produce the summary
        max_turns: Completed turns after which history is compacted
        compaction_context_limit: Consumed tokens after which history is compacted
    """

    compaction_instructions: str
    max_turns: int = DEFAULT_MAX_TURNS
    compaction_context_limit: int = DEFAULT_COMPACTION_CONTEXT_LIMIT

    def __post_init__(self) -> None:
        if self.max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        if self.compaction_context_limit < 1:
            raise ValueError("compaction_context_limit must be at least 1")
