# app/services/message_refiner.py
"""
Message Refiner
Rewrites a partner message into one vibe, or into every catalog vibe at once.

Refinement is best-effort: nothing here raises to the caller. Whenever the
gateway cannot help, the original text comes back with used_fallback=True and
a human-readable failure_reason.
"""

from dataclasses import dataclass

from app.infrastructure.observability.logging import get_logger, log_ai_fallback
from app.models.domain.vibe_domain import VIBE_CATALOG, VibeCatalog, VibeDefinition
from app.services.openai_service import (
    CompletionOptions,
    GatewayErr,
    GatewayErrorKind,
    TextGenerationGateway,
)

logger = get_logger(__name__)

INVALID_INPUT = "invalid input"
INCOMPLETE_RESPONSE = "incomplete response"

FAILURE_REASONS: dict[GatewayErrorKind, str] = {
    GatewayErrorKind.UNCONFIGURED: "not configured",
    GatewayErrorKind.RATE_LIMITED: "rate limited",
    GatewayErrorKind.QUOTA_EXCEEDED: "quota exceeded",
    GatewayErrorKind.PROVIDER_ERROR: "provider error",
}


@dataclass(frozen=True, slots=True)
class MessageAliases:
    """Nicknames of the sender and recipient, when the couple has set them."""

    sender: str | None = None
    recipient: str | None = None


@dataclass(frozen=True, slots=True)
class RefinementResult:
    refined_text: str
    used_fallback: bool
    failure_reason: str | None = None


@dataclass(frozen=True, slots=True)
class AllVibesRefinementResult:
    variants: dict[str, str]
    used_fallback: bool
    failure_reason: str | None = None


def describe_failure(error: GatewayErr) -> str:
    """Map a gateway failure to the reason shown to users (never the raw detail)."""
    return FAILURE_REASONS.get(error.kind, FAILURE_REASONS[GatewayErrorKind.PROVIDER_ERROR])


class MessageRefiner:
    """Tone-adjusts partner messages through the text generation gateway."""

    def __init__(
        self,
        gateway: TextGenerationGateway,
        catalog: VibeCatalog = VIBE_CATALOG,
        *,
        temperature: float = 0.7,
        max_tokens: int = 500,
        all_vibes_max_tokens: int = 1000,
    ):
        self.gateway = gateway
        self.catalog = catalog
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.all_vibes_max_tokens = all_vibes_max_tokens

    @classmethod
    def from_settings(cls, gateway: TextGenerationGateway, settings) -> "MessageRefiner":
        return cls(
            gateway,
            temperature=settings.REFINE_TEMPERATURE,
            max_tokens=settings.REFINE_MAX_TOKENS,
            all_vibes_max_tokens=settings.REFINE_ALL_MAX_TOKENS,
        )

    async def refine_one(
        self, text: str, vibe_id: str | None, aliases: MessageAliases | None = None
    ) -> RefinementResult:
        """
        Rewrite ``text`` in a single vibe.

        Returns:
            RefinementResult; refined_text is the original text whenever
            used_fallback is True.
        """
        vibe = self.catalog.get(vibe_id)
        if not text or not text.strip() or vibe is None:
            logger.info("Refinement skipped: invalid input", vibe=vibe_id, text_length=len(text or ""))
            return RefinementResult(refined_text=text, used_fallback=True, failure_reason=INVALID_INPUT)

        prompt = self._build_single_prompt(text, vibe, aliases)
        result = await self.gateway.complete(
            prompt,
            options=CompletionOptions(
                json_mode=False, temperature=self.temperature, max_tokens=self.max_tokens
            ),
        )

        if isinstance(result, GatewayErr):
            reason = describe_failure(result)
            log_ai_fallback("refine", reason, vibe=vibe.id)
            return RefinementResult(refined_text=text, used_fallback=True, failure_reason=reason)

        refined = result.text.strip()
        if not refined:
            reason = FAILURE_REASONS[GatewayErrorKind.PROVIDER_ERROR]
            log_ai_fallback("refine", reason, vibe=vibe.id, empty_text=True)
            return RefinementResult(refined_text=text, used_fallback=True, failure_reason=reason)

        logger.info("Message refined", vibe=vibe.id, original_length=len(text), refined_length=len(refined))
        return RefinementResult(refined_text=refined, used_fallback=False)

    async def refine_all(
        self, text: str, aliases: MessageAliases | None = None
    ) -> AllVibesRefinementResult:
        """
        Rewrite ``text`` in every catalog vibe with one batched JSON call.

        The returned map always has exactly one entry per catalog id; ids the
        model skipped (or left blank) carry the original text.
        """
        vibe_ids = self.catalog.ids()

        if not text or not text.strip():
            return AllVibesRefinementResult(
                variants={vibe_id: text for vibe_id in vibe_ids},
                used_fallback=True,
                failure_reason=INVALID_INPUT,
            )

        prompt = self._build_all_vibes_prompt(text, aliases)
        result = await self.gateway.complete(
            prompt,
            options=CompletionOptions(
                json_mode=True, temperature=self.temperature, max_tokens=self.all_vibes_max_tokens
            ),
        )

        if isinstance(result, GatewayErr):
            reason = describe_failure(result)
            log_ai_fallback("refine_all", reason, vibes=len(vibe_ids))
            return AllVibesRefinementResult(
                variants={vibe_id: text for vibe_id in vibe_ids},
                used_fallback=True,
                failure_reason=reason,
            )

        payload = {
            str(key).lower(): value for key, value in (result.payload or {}).items()
        }
        variants: dict[str, str] = {}
        missing: list[str] = []
        for vibe_id in vibe_ids:
            value = payload.get(vibe_id.lower())
            if isinstance(value, str) and value.strip():
                variants[vibe_id] = value.strip()
            else:
                variants[vibe_id] = text
                missing.append(vibe_id)

        if missing:
            logger.warning("All-vibe refinement incomplete", missing_vibes=missing)
            return AllVibesRefinementResult(
                variants=variants, used_fallback=True, failure_reason=INCOMPLETE_RESPONSE
            )

        logger.info("Message refined for all vibes", vibes=len(variants), original_length=len(text))
        return AllVibesRefinementResult(variants=variants, used_fallback=False)

    # ------------------------------------------------------------------
    # Prompt building
    # ------------------------------------------------------------------
    def _alias_context(self, aliases: MessageAliases | None) -> str:
        if aliases is None or not (aliases.sender or aliases.recipient):
            return ""

        lines = ["", "Context:"]
        if aliases.sender:
            lines.append(f'- The sender goes by the nickname "{aliases.sender}".')
        if aliases.recipient:
            lines.append(f'- The recipient goes by the nickname "{aliases.recipient}".')
        lines.append("Please incorporate these nicknames naturally if appropriate.")
        return "\n".join(lines)

    def _build_single_prompt(
        self, text: str, vibe: VibeDefinition, aliases: MessageAliases | None
    ) -> str:
        return f"""As a relationship communication assistant, please help refine the following message between partners.

Original message: "{text}"{self._alias_context(aliases)}

{vibe.rewrite_instruction}

The refined message should sound natural and authentic, not overly formal or robotic.
Keep it approximately the same length as the original message.
Do not add expressions like "I feel" or similar phrases unless they were in the original message.
Do not include any explanation, just respond with the refined message text."""

    def _build_all_vibes_prompt(self, text: str, aliases: MessageAliases | None) -> str:
        structure = ",\n".join(
            f'  "{vibe.id}": "refined message with {vibe.id} tone"' for vibe in self.catalog
        )
        guidelines = "\n".join(
            f"- {vibe.display_name}: {vibe.rewrite_instruction}" for vibe in self.catalog
        )
        return f"""As a relationship communication assistant, please help refine the following message between partners
in multiple different emotional tones. For each tone, create a modified version of the message.

Original message: "{text}"{self._alias_context(aliases)}

Please rewrite this message in the following {len(self.catalog)} distinct vibes, maintaining the core meaning but adjusting the tone.
Return the results as a single valid JSON object with exactly these keys:
{{
{structure}
}}

For each vibe, follow these guidelines:
{guidelines}

The refined messages should:
- Sound natural and authentic, not overly formal or robotic
- Keep approximately the same length as the original message
- Not add expressions like "I feel" unless they were in the original"""
