"""
Rule-based coach used when the client asks for the no-AI coaching mode.

Topic rules are checked in order against the lower-cased input and the first
rule with a matching keyword wins. Nothing here touches the gateway.
"""

import random
from collections.abc import Sequence
from dataclasses import dataclass

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TopicRule:
    topic: str
    keywords: tuple[str, ...]
    response: str


TOPIC_RULES: tuple[TopicRule, ...] = (
    TopicRule(
        topic="communication",
        keywords=("communicat", "talk", "listen", "understand me", "ignore"),
        response=(
            "Communication is the foundation of every strong relationship. Try setting aside "
            "ten minutes a day where each of you shares something on your mind while the other "
            "simply listens, without fixing or defending. What usually happens when the two of "
            "you try to talk about something important?"
        ),
    ),
    TopicRule(
        topic="trust",
        keywords=("trust", "cheat", "lying", "lied", "betray", "jealous", "suspicious"),
        response=(
            "Trust takes time to build and even longer to rebuild, and it's completely valid to "
            "feel shaken. Rebuilding usually starts with small, consistent actions and honest "
            "conversations about what each of you needs to feel safe. What would help you begin "
            "to feel more secure again?"
        ),
    ),
    TopicRule(
        topic="conflict",
        keywords=("fight", "argu", "conflict", "disagree", "yell", "angry"),
        response=(
            "Disagreements are normal; what matters is how you handle them. When things heat up, "
            "it's okay to pause and agree to come back once you've both calmed down. Try using "
            "\"I\" statements to describe how you feel rather than what your partner did. What "
            "topic tends to spark your disagreements?"
        ),
    ),
    TopicRule(
        topic="time",
        keywords=("time together", "busy", "schedule", "no time", "work late", "quality time"),
        response=(
            "Busy seasons can leave couples feeling like roommates. Even small rituals help: a "
            "shared coffee in the morning, a short walk after dinner, or a weekly date you both "
            "protect. When did you last have time together that felt truly connected?"
        ),
    ),
    TopicRule(
        topic="intimacy",
        keywords=("intima", "sex", "affection", "romance", "touch", "distant"),
        response=(
            "Intimacy covers emotional closeness as much as physical connection, and it often "
            "ebbs and flows. Gentle, non-judgmental conversations about what makes each of you "
            "feel close can open things up. What used to help you feel connected to each other?"
        ),
    ),
    TopicRule(
        topic="family",
        keywords=("family", "kids", "children", "parent", "in-law", "mother", "father"),
        response=(
            "Family dynamics can put real pressure on a relationship. It helps to agree as a team "
            "on boundaries and expectations before facing family situations together. How do the "
            "two of you usually handle decisions that involve your families?"
        ),
    ),
    TopicRule(
        topic="money",
        keywords=("money", "financ", "spend", "budget", "debt", "bills"),
        response=(
            "Money is one of the most common sources of tension between partners, often because "
            "it carries different meanings for each person. A calm, scheduled money conversation "
            "where you share goals rather than blame can make a big difference. What does money "
            "represent for you: security, freedom, something else?"
        ),
    ),
    TopicRule(
        topic="appreciation",
        keywords=("apprecia", "thank", "grateful", "taken for granted", "unnoticed", "valued"),
        response=(
            "Feeling appreciated is a core need in any relationship. Small, specific expressions "
            "of gratitude, like naming something your partner did and how it helped you, can shift "
            "the whole atmosphere at home. When did you last feel truly appreciated by your partner?"
        ),
    ),
)

DEFAULT_RESPONSES: tuple[str, ...] = (
    "Thank you for sharing that. Can you tell me more about what's been on your mind?",
    "I hear you. How long have you been feeling this way?",
    "That sounds important. How do you think your partner sees the situation?",
    "It takes courage to talk about this. What would you most like to change?",
    "I'm here to help. What does a good day in your relationship look like?",
)


class KeywordCoachResponder:
    """Deterministic first-match-wins topic responder."""

    def __init__(
        self,
        rules: Sequence[TopicRule] = TOPIC_RULES,
        default_responses: Sequence[str] = DEFAULT_RESPONSES,
        *,
        rng: random.Random | None = None,
    ):
        self.rules = tuple(rules)
        self.default_responses = tuple(default_responses)
        self.rng = rng or random.Random()

    def match_topic(self, text: str) -> TopicRule | None:
        lowered = (text or "").lower()
        for rule in self.rules:
            if any(keyword in lowered for keyword in rule.keywords):
                return rule
        return None

    def respond(self, text: str) -> str:
        rule = self.match_topic(text)
        if rule is not None:
            logger.info("Rule-based coach matched topic", topic=rule.topic)
            return rule.response

        logger.info("Rule-based coach used default pool")
        return self.rng.choice(self.default_responses)
