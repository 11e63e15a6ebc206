"""
Intent resolution for chat messages.

Two independent strategies are combined with a fixed precedence:
- Deterministic patterns over the message text (always available)
- An optional classifier hint (advisory, may be missing or wrong)

Exact tokens ("yes", "undo", "bucket") beat phrase patterns, which beat the
classifier's label. Slot values prefer the classifier when it agreed on the
intent, then the pattern capture, then the message with keywords stripped.
"""

import re
import string
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from planner.engine.classifier import ClassifierHint, IntentClassifier
from planner.store.entities import EntityKind


class Intent(str, Enum):
    """Closed set of things a message can ask for."""
    CREATE_BOARD = "create_board"
    ADD_BUCKET = "add_bucket"
    ADD_TASK = "add_task"
    ADD_MEMBER = "add_member"
    DELETE = "delete"
    UNDO = "undo"
    CONFIRM_YES = "confirm_yes"
    CONFIRM_NO = "confirm_no"
    CHOOSE_KIND = "choose_kind"
    GREETING = "greeting"
    UNKNOWN = "unknown"


# Slot that falls back to the keyword-stripped message
PRIMARY_SLOT = {
    Intent.CREATE_BOARD: "title",
    Intent.ADD_BUCKET: "title",
    Intent.ADD_TASK: "title",
    Intent.ADD_MEMBER: "name",
    Intent.DELETE: "query",
}

INTENT_SLOTS = {
    Intent.CREATE_BOARD: ("title",),
    Intent.ADD_BUCKET: ("title", "board"),
    Intent.ADD_TASK: ("title", "bucket", "board"),
    Intent.ADD_MEMBER: ("name",),
    Intent.DELETE: ("query", "kind"),
}

KIND_WORDS = {
    "board": EntityKind.BOARD,
    "project": EntityKind.BOARD,
    "bucket": EntityKind.BUCKET,
    "column": EntityKind.BUCKET,
    "task": EntityKind.TASK,
    "member": EntityKind.MEMBER,
    "user": EntityKind.MEMBER,
}

GREETINGS = {
    "hi", "hello", "hey", "hiya", "yo", "hi there", "hello there", "hey there",
    "good morning", "good afternoon", "good evening", "help",
}

CLASSIFIER_ACTIONS = {
    "create_board": Intent.CREATE_BOARD,
    "add_bucket": Intent.ADD_BUCKET,
    "add_task": Intent.ADD_TASK,
    "add_member": Intent.ADD_MEMBER,
    "delete": Intent.DELETE,
    "undo": Intent.UNDO,
    "none": Intent.UNKNOWN,
}

# Words dropped when a slot has to be recovered from the whole message
KEYWORDS = {
    "please", "pls", "can", "could", "would", "you", "i", "want", "need", "to",
    "lets", "let's", "a", "an", "the", "new", "named", "called", "titled",
    "create", "add", "make", "start", "invite", "delete", "remove", "erase",
    "drop", "board", "project", "bucket", "column", "list", "task", "member",
    "user", "person", "teammate",
}

_PREFIX = r"^(?:(?:please|pls|can you|could you|would you|i want to|i'd like to|let's|lets)\s+)*"
_NAMED = r"(?:(?:named|called|titled)\s+)?"
_ARTICLE = r"(?:(?:a|an|the)\s+)?(?:new\s+)?"

UNDO_RE = re.compile(_PREFIX + r"(?:undo|revert|restore|bring\s+(?:it\s+)?back)\b", re.I)
DELETE_RE = re.compile(
    _PREFIX + r"(?:delete|remove|erase|drop|get\s+rid\s+of)\s+(?:the\s+)?"
    r"(?:(?P<kind>board|project|bucket|column|task|member|user)\s+)?" + _NAMED
    + r"(?P<query>.+?)(?:\s+(?P<kind_after>board|project|bucket|column|task|member|user))?$",
    re.I,
)
BOARD_SUFFIX_RE = re.compile(
    r"\s+(?:on|in|to|into|for)\s+(?:the\s+)?(?:board|project)\s+(?P<board>.+)$", re.I
)
ADD_TASK_WITH_BUCKET_RE = re.compile(
    _PREFIX + r"(?:add|create|make|new)\s+" + _ARTICLE + r"task\s+" + _NAMED
    + r"(?P<title>.+)\s+(?:in|to|under|into)\s+(?:the\s+)?(?:bucket\s+)?"
    r"(?P<bucket>.+?)(?:\s+bucket)?$",
    re.I,
)
ADD_TASK_RE = re.compile(
    _PREFIX + r"(?:add|create|make|new)\s+" + _ARTICLE + r"task\s+" + _NAMED + r"(?P<title>.+)$",
    re.I,
)
ADD_BUCKET_RE = re.compile(
    _PREFIX + r"(?:add|create|make|new)\s+" + _ARTICLE + r"(?:bucket|column|list)\s+"
    + _NAMED + r"(?P<title>.+)$",
    re.I,
)
CREATE_BOARD_RE = re.compile(
    _PREFIX + r"(?:create|add|make|new|start)\s+" + _ARTICLE + r"(?:board|project)\s+"
    + _NAMED + r"(?P<title>.+)$",
    re.I,
)
ADD_MEMBER_RE = re.compile(
    _PREFIX + r"(?:add|invite|create|new)\s+" + _ARTICLE
    + r"(?:member|user|person|teammate)\s+" + _NAMED + r"(?P<name>.+)$",
    re.I,
)

CREATE_VERBS = {"add", "create", "make", "new", "start", "invite"}
DELETE_VERBS = {"delete", "remove", "erase", "drop"}


@dataclass
class ResolvedIntent:
    """Outcome of intent resolution."""
    intent: Intent
    slots: dict[str, str] = field(default_factory=dict)
    source: str = "pattern"  # token | pattern | keyword | classifier | none
    reply: Optional[str] = None  # classifier's free-text answer, if any

    def slot(self, name: str) -> Optional[str]:
        value = self.slots.get(name)
        return value or None

    @property
    def kind(self) -> Optional[EntityKind]:
        value = self.slot("kind")
        return KIND_WORDS.get(value.lower()) if value else None


def normalize(text: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    text = text.lower().translate(str.maketrans("", "", string.punctuation))
    return " ".join(text.split())


def clean_value(value: Optional[str]) -> str:
    """Trim whitespace, quotes and trailing punctuation from a slot value."""
    if not value:
        return ""
    value = str(value).strip().rstrip(".!?;,").strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'`":
        value = value[1:-1].strip()
    return value


def strip_keywords(message: str) -> str:
    """The message with intent keywords and filler words removed."""
    words = [w for w in message.split() if w.lower().strip(string.punctuation) not in KEYWORDS]
    return clean_value(" ".join(words))


class IntentResolver:
    """
    Turns a raw message into a ResolvedIntent.

    The classifier is optional: without it, or when it fails, resolution is
    purely pattern based and deterministic for a given message.
    """

    def __init__(self, classifier: Optional[IntentClassifier] = None):
        self.classifier = classifier

    async def resolve(self, message: str) -> ResolvedIntent:
        """Resolve a message, consulting the classifier unless a token matches."""
        token = self.match_token(message)
        if token is not None:
            return token

        hint = None
        if self.classifier is not None:
            hint = await self.classifier.classify(message)
        return self.resolve_with_hint(message, hint)

    def match_token(self, message: str) -> Optional[ResolvedIntent]:
        """Exact single-token messages: yes, no, undo, a kind, a greeting."""
        text = normalize(message)
        if text == "yes":
            return ResolvedIntent(Intent.CONFIRM_YES, source="token")
        if text == "no":
            return ResolvedIntent(Intent.CONFIRM_NO, source="token")
        if text == "undo":
            return ResolvedIntent(Intent.UNDO, source="token")
        if text in ("board", "bucket", "task", "member"):
            return ResolvedIntent(Intent.CHOOSE_KIND, {"kind": text}, source="token")
        if text in GREETINGS:
            return ResolvedIntent(Intent.GREETING, source="token")
        return None

    def resolve_with_hint(
        self,
        message: str,
        hint: Optional[ClassifierHint] = None,
    ) -> ResolvedIntent:
        """
        Combine pattern matching with an optional classifier hint.

        Args:
            message: Raw user message
            hint: Parsed classifier answer, or None

        Returns:
            ResolvedIntent with slots filled per slot precedence
        """
        token = self.match_token(message)
        if token is not None:
            return token

        reply = hint.reply if hint else None
        hint_intent = CLASSIFIER_ACTIONS.get(hint.action.lower().strip()) if hint else None

        matched = self._match_pattern(message)
        if matched is not None:
            intent, captures = matched
            source = "pattern"
        else:
            matched = self._match_keywords(message)
            if matched is not None:
                intent, captures = matched, {}
                source = "keyword"
            elif hint_intent not in (None, Intent.UNKNOWN):
                intent, captures = hint_intent, {}
                source = "classifier"
            else:
                return ResolvedIntent(Intent.UNKNOWN, source="none", reply=reply)

        if intent == Intent.UNDO:
            return ResolvedIntent(intent, source=source, reply=reply)

        hint_slots = self._hint_slots(intent, hint) if hint_intent == intent else {}
        slots: dict[str, str] = {}
        for name in INTENT_SLOTS[intent]:
            value = clean_value(hint_slots.get(name)) or clean_value(captures.get(name))
            if value:
                slots[name] = value

        primary = PRIMARY_SLOT[intent]
        if primary not in slots:
            fallback = strip_keywords(message)
            if fallback:
                slots[primary] = fallback

        return ResolvedIntent(intent, slots, source=source, reply=reply)

    # ─────────────────────────────────────────────────────────
    # STRATEGIES
    # ─────────────────────────────────────────────────────────

    def _match_pattern(self, message: str) -> Optional[tuple[Intent, dict]]:
        """Targeted phrase patterns, most specific first."""
        text = message.strip().rstrip(".!?").strip()

        if UNDO_RE.match(text):
            return Intent.UNDO, {}

        match = DELETE_RE.match(text)
        if match:
            kind = match.group("kind") or match.group("kind_after")
            captures = {"query": match.group("query")}
            if kind:
                captures["kind"] = kind.lower()
            return Intent.DELETE, captures

        board = None
        suffix = BOARD_SUFFIX_RE.search(text)
        if suffix:
            board = suffix.group("board")
            scoped = text[:suffix.start()]
        else:
            scoped = text

        for pattern in (ADD_TASK_WITH_BUCKET_RE, ADD_TASK_RE):
            match = pattern.match(scoped)
            if match:
                captures = match.groupdict()
                captures["board"] = board
                return Intent.ADD_TASK, captures

        match = ADD_BUCKET_RE.match(scoped)
        if match:
            return Intent.ADD_BUCKET, {"title": match.group("title"), "board": board}

        match = CREATE_BOARD_RE.match(text)
        if match:
            return Intent.CREATE_BOARD, {"title": match.group("title")}

        match = ADD_MEMBER_RE.match(text)
        if match:
            return Intent.ADD_MEMBER, {"name": match.group("name")}

        return None

    def _match_keywords(self, message: str) -> Optional[Intent]:
        """Loose keyword checks for messages no phrase pattern matched."""
        words = set(normalize(message).split())

        if "undo" in words:
            return Intent.UNDO
        if words & DELETE_VERBS:
            return Intent.DELETE
        if words & CREATE_VERBS:
            if "task" in words:
                return Intent.ADD_TASK
            if words & {"bucket", "column"}:
                return Intent.ADD_BUCKET
            if words & {"board", "project"}:
                return Intent.CREATE_BOARD
            if words & {"member", "teammate", "person", "user"}:
                return Intent.ADD_MEMBER
        return None

    def _hint_slots(self, intent: Intent, hint: ClassifierHint) -> dict:
        """Map classifier data fields onto slot names."""
        data = {k: v for k, v in hint.data.items() if isinstance(v, str)}
        if intent == Intent.DELETE:
            return {
                "query": data.get("name") or data.get("title"),
                "kind": data.get("type"),
            }
        return data
