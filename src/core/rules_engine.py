"""Rule compilation and matching logic (core domain)."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Optional, Tuple

from core.errors import ConfigurationError
from core.models import Message, MessageExtras

if TYPE_CHECKING:
    from core.config import WebhookTarget

LOGGER = logging.getLogger(__name__)

TYPE_APPID = "appid"
TYPE_TITLE = "title"
TYPE_MESSAGE = "message"
TYPE_TAG = "tag"
RULE_TYPES = (TYPE_APPID, TYPE_TITLE, TYPE_MESSAGE, TYPE_TAG)

MODE_AND = "AND"
MODE_OR = "OR"
_MODE_ALIASES = {"and": MODE_AND, "&&": MODE_AND, "or": MODE_OR, "||": MODE_OR}


@dataclass(frozen=True)
class Rule:
    """One typed predicate of a webhook's rule set."""

    type: str = TYPE_APPID
    mode: str = MODE_AND
    texts: Tuple[str, ...] = ()


def _normalize_mode(raw_mode: Optional[str]) -> str:
    if not raw_mode:
        return MODE_AND
    mode = _MODE_ALIASES.get(str(raw_mode).strip().lower())
    if mode is None:
        raise ConfigurationError(f"Unsupported rule mode: {raw_mode}")
    return mode


def _normalize_type(raw_type: Optional[str]) -> str:
    if not raw_type:
        return TYPE_APPID
    rule_type = str(raw_type).strip().lower()
    if rule_type not in RULE_TYPES:
        raise ConfigurationError(f"Unsupported rule type: {raw_type}")
    return rule_type


def build_rules(rules_config: Optional[Iterable[dict]]) -> Tuple[Rule, ...]:
    """Normalize rule configs.

    Missing type and mode fall back to ``appid`` and ``AND`` so that matching
    never has to guess about casing or absent fields.
    """

    if rules_config is None:
        rules_config = []
    elif not isinstance(rules_config, (list, tuple)):
        raise ConfigurationError("rules must be a list")

    compiled = []
    for rule in rules_config:
        if not isinstance(rule, dict):
            raise ConfigurationError(f"Rule must be an object, got {type(rule).__name__}")
        texts = rule.get("texts") or []
        if isinstance(texts, str):
            texts = [texts]
        elif not isinstance(texts, (list, tuple)):
            raise ConfigurationError("Rule texts must be a list")
        compiled.append(
            Rule(
                type=_normalize_type(rule.get("type")),
                mode=_normalize_mode(rule.get("mode")),
                texts=tuple(str(text) for text in texts),
            )
        )
    return tuple(compiled)


def message_tag(message: Message) -> Optional[str]:
    """Return the ``tag`` extra when it is present and a string."""

    if not message.extras:
        return None
    value = message.extras.get("tag")
    if isinstance(value, str):
        return value
    return None


def _equals_folded(subject: str, text: str) -> bool:
    return subject.casefold() == text.casefold()


def _contains(subject: str, text: str) -> bool:
    return text in subject


def _subject_for(rule: Rule, message: Message, extras: MessageExtras) -> Tuple[str, Callable[[str, str], bool]]:
    if rule.type == TYPE_TITLE:
        return message.title, _contains
    if rule.type == TYPE_MESSAGE:
        return message.body, _contains
    if rule.type == TYPE_TAG:
        return message_tag(message) or "", _equals_folded
    return str(extras.app_id), _equals_folded


def rule_matches(rule: Rule, message: Message, extras: MessageExtras) -> bool:
    """Evaluate a single rule; a rule without texts never matches."""

    if not rule.texts:
        LOGGER.debug("Rule %s has no texts, treating as no match", rule.type)
        return False

    subject, compare = _subject_for(rule, message, extras)
    LOGGER.debug("Rule %s/%s subject=%r texts=%r", rule.type, rule.mode, subject, rule.texts)
    if rule.mode == MODE_OR:
        return any(compare(subject, text) for text in rule.texts)
    return all(compare(subject, text) for text in rule.texts)


def tags_match(message: Message, tags: Iterable[str]) -> bool:
    """Tag mode: the message tag must equal one of the configured tags."""

    tag = message_tag(message)
    LOGGER.debug("Message tag: %r", tag)
    if not tag:
        return False
    return any(_equals_folded(tag, candidate) for candidate in tags)


def matches(message: Message, extras: MessageExtras, target: "WebhookTarget") -> bool:
    """Return whether the message should be forwarded to the target.

    Matching logic:
    - Without rules the target is in tag mode (see ``tags_match``).
    - With rules every rule must match, whatever each rule's own mode is.
    """

    if not target.rules:
        return tags_match(message, target.tags)
    return all(rule_matches(rule, message, extras) for rule in target.rules)


def describe_rules(rules: Iterable[Rule]) -> Dict[str, int]:
    """Count rules per type, used for the startup summary."""

    counts: Dict[str, int] = {}
    for rule in rules:
        counts[rule.type] = counts.get(rule.type, 0) + 1
    return counts
