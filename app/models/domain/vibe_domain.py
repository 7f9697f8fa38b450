# app/models/domain/vibe_domain.py
"""
Vibe Domain Models
The fixed catalog of message tones ("vibes") a partner message can be rewritten in.

The vibe id is the stable key used everywhere downstream (API payloads, the
batched JSON the model returns, stored messages). Display names are for UI only.
"""

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class VibeDefinition:
    """One named tone with the instruction used to rewrite a message into it."""

    id: str
    display_name: str
    description: str
    rewrite_instruction: str


_DEFAULT_VIBES: tuple[VibeDefinition, ...] = (
    VibeDefinition(
        id="affectionate",
        display_name="Affectionate",
        description="Warm, loving, and caring tone that expresses fondness and tenderness",
        rewrite_instruction=(
            "Rephrase this message to express deep love, warmth, and tenderness. "
            "Make it sound genuinely loving while maintaining the original intent."
        ),
    ),
    VibeDefinition(
        id="concerned",
        display_name="Concerned",
        description="Shows genuine care and worry about your partner's wellbeing",
        rewrite_instruction=(
            "Rephrase this message to show genuine worry and care. Express thoughtful "
            "concern for your partner's wellbeing while maintaining the original intent."
        ),
    ),
    VibeDefinition(
        id="apologetic",
        display_name="Apologetic",
        description="Expresses sincere regret and takes responsibility",
        rewrite_instruction=(
            "Rephrase this message to express sincere regret and a desire to make amends. "
            "Show genuine remorse while maintaining the original intent."
        ),
    ),
    VibeDefinition(
        id="playful",
        display_name="Playful",
        description="Light-hearted, fun, and engaging with a touch of humor",
        rewrite_instruction=(
            "Rephrase this message to be more light-hearted and fun. Add a touch of humor "
            "or playfulness while maintaining the original intent."
        ),
    ),
    VibeDefinition(
        id="excited",
        display_name="Excited",
        description="Enthusiastic and energetic with a sense of anticipation",
        rewrite_instruction=(
            "Rephrase this message to express enthusiasm and positive energy. Show genuine "
            "excitement while maintaining the original intent."
        ),
    ),
    VibeDefinition(
        id="flirty",
        display_name="Flirty",
        description="Playfully romantic with subtle romantic innuendo",
        rewrite_instruction=(
            "Rephrase this message to be subtly romantic and suggestive. Add a touch of "
            "loving intimacy while maintaining the original intent."
        ),
    ),
    VibeDefinition(
        id="funny",
        display_name="Funny",
        description="Humorous and witty with a focus on making your partner laugh",
        rewrite_instruction=(
            "Rephrase this message to be humorous and amusing. Add a witty joke or "
            "lighthearted humor while maintaining the original intent."
        ),
    ),
)


class VibeCatalog:
    """Ordered, immutable set of vibes keyed by id."""

    def __init__(self, vibes: tuple[VibeDefinition, ...] = _DEFAULT_VIBES):
        by_id: dict[str, VibeDefinition] = {}
        for vibe in vibes:
            key = vibe.id.lower()
            if key in by_id:
                raise ValueError(f"Duplicate vibe id: {vibe.id}")
            by_id[key] = vibe
        self._vibes = tuple(vibes)
        self._by_id = by_id

    def __iter__(self) -> Iterator[VibeDefinition]:
        return iter(self._vibes)

    def __len__(self) -> int:
        return len(self._vibes)

    def __contains__(self, vibe_id: object) -> bool:
        return isinstance(vibe_id, str) and self.get(vibe_id) is not None

    def ids(self) -> list[str]:
        """Vibe ids in catalog order."""
        return [vibe.id for vibe in self._vibes]

    def get(self, vibe_id: str | None) -> VibeDefinition | None:
        """Look up a vibe by id (case-insensitive). Display names never match."""
        if not vibe_id:
            return None
        return self._by_id.get(vibe_id.strip().lower())


VIBE_CATALOG = VibeCatalog()
