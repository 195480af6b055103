"""Rule-based message signals for the answer prompt.

Per-message priority, categories and action items, aggregate insights over
the result batch, and a reply-template hint for compose requests. All rules
are keyword regexes; nothing here calls a model.
"""

import re
from collections import Counter
from dataclasses import dataclass, field

from src.core.formatting import message_text
from src.core.schemas.ask import CandidateMessage

# category -> (pattern, urgency weight)
CATEGORY_PATTERNS: dict[str, tuple[re.Pattern, int]] = {
    "urgent": (re.compile(
        r"\b(urgent|asap|immediately|critical|emergency|time[- ]?sensitive|deadline|priority|pressing)\b",
        re.IGNORECASE,
    ), 5),
    "meeting": (re.compile(
        r"\b(meeting|call|conference|zoom|teams|schedule|calendar|appointment|sync|standup|discussion)\b",
        re.IGNORECASE,
    ), 2),
    "financial": (re.compile(
        r"\b(invoice|payment|quote|proposal|budget|cost|price|billing|expense|refund|transaction"
        r"|purchase order|po)\b",
        re.IGNORECASE,
    ), 3),
    "contract": (re.compile(
        r"\b(contract|agreement|terms|nda|non[- ]?disclosure|legal|clause|amendment|renewal|signature)\b",
        re.IGNORECASE,
    ), 4),
    "deadline": (re.compile(
        r"\b(deadline|due date|by\s+\w+day|eod|end of day|cob|close of business|before|until)\b",
        re.IGNORECASE,
    ), 4),
    "follow-up": (re.compile(
        r"\b(follow[- ]?up|follow[- ]?ing up|checking in|circling back|reminder|any update)\b",
        re.IGNORECASE,
    ), 0),
    "client": (re.compile(
        r"\b(client|customer|vendor|partner|stakeholder|prospect|lead)\b", re.IGNORECASE,
    ), 0),
    "project": (re.compile(
        r"\b(project|initiative|campaign|milestone|deliverable|sprint|roadmap|timeline)\b", re.IGNORECASE,
    ), 0),
    "complaint": (re.compile(
        r"\b(complaint|issue|problem|concern|dissatisfied|unhappy|disappointed|frustrated)\b", re.IGNORECASE,
    ), 4),
}

_ACTION_REQUIRED_RE = re.compile(
    r"\b(action required|please\s+\w+|need your|waiting for|approval|approve|review|confirm|respond|reply)\b",
    re.IGNORECASE,
)
_POSITIVE_RE = re.compile(r"\b(thank|thanks|appreciate|great|excellent|wonderful|pleased|happy)\b", re.IGNORECASE)
_NEGATIVE_RE = re.compile(r"\b(sorry|apologize|regret|mistake|error|problem|issue)\b", re.IGNORECASE)
_INTERNAL_SENDER_RE = re.compile(r"@(company|internal|corp)\.", re.IGNORECASE)

AMOUNT_PATTERNS = [
    re.compile(r"\$[\d,]+(?:\.\d{2})?"),
    re.compile(r"\b\d+(?:,\d{3})*(?:\.\d{2})?\s*(?:usd|eur|gbp|dollars?|euros?|pounds?)\b", re.IGNORECASE),
    re.compile(r"\b(?:usd|eur|gbp)\s*\d+(?:,\d{3})*(?:\.\d{2})?\b", re.IGNORECASE),
]

DATE_PATTERNS = [
    re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b"),
    re.compile(r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\s+\d{1,2},?\s+\d{2,4}\b", re.IGNORECASE),
    re.compile(r"\b\d{1,2}\s+(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\s+\d{2,4}\b", re.IGNORECASE),
    re.compile(
        r"\b(?:tomorrow|today|tonight|monday|tuesday|wednesday|thursday|friday|saturday|sunday"
        r"|next week|next month)\b",
        re.IGNORECASE,
    ),
]

# Action item line shapes: (pattern, group holding the item)
_ACTION_LINE_PATTERNS: list[tuple[re.Pattern, int]] = [
    (re.compile(r"^[-*•]\s*(.+)"), 1),
    (re.compile(r"^\d+\.\s*(.+)"), 1),
    (re.compile(r"\b(please|kindly|could you|can you|would you)\s+(.{10,100})", re.IGNORECASE), 0),
    (re.compile(r"\b(need to|have to|must|should)\s+(.{10,100})", re.IGNORECASE), 0),
    (re.compile(r"\b(action|task|todo|to-do):\s*(.+)", re.IGNORECASE), 0),
]

MAX_ACTION_ITEMS = 5
ACTION_TEXT_CHARS = 2000

CRITICAL_SCORE = 8
HIGH_SCORE = 5
MEDIUM_SCORE = 2


@dataclass
class MessageSignals:
    priority: str = "low"  # critical | high | medium | low
    urgency_score: int = 0
    categories: list[str] = field(default_factory=list)
    requires_action: bool = False
    requires_response: bool = False
    sentiment: str = "neutral"  # positive | negative | neutral | urgent
    business_type: str | None = None
    amounts: list[str] = field(default_factory=list)
    dates: list[str] = field(default_factory=list)


def _priority(score: int) -> str:
    if score >= CRITICAL_SCORE:
        return "critical"
    if score >= HIGH_SCORE:
        return "high"
    if score >= MEDIUM_SCORE:
        return "medium"
    return "low"


def analyze_message(subject: str, body: str, snippet: str = "", sender: str = "") -> MessageSignals:
    """Keyword signals of one message."""
    text = f"{subject or ''} {body or ''} {snippet or ''}".lower()
    sig = MessageSignals()

    for category, (pattern, weight) in CATEGORY_PATTERNS.items():
        if not pattern.search(text):
            continue
        sig.categories.append(category)
        sig.urgency_score += weight
        if category == "urgent":
            sig.sentiment = "urgent"
        elif category == "meeting":
            sig.business_type = "meeting"
            sig.requires_response = True
        elif category == "financial":
            sig.business_type = sig.business_type or "financial"
        elif category == "contract":
            sig.business_type = "legal"
        elif category == "deadline":
            sig.requires_action = True
        elif category == "client":
            sig.business_type = sig.business_type or "client_communication"
        elif category == "complaint":
            sig.sentiment = "negative"
            sig.requires_response = True

    if _ACTION_REQUIRED_RE.search(text):
        sig.requires_action = True
        sig.requires_response = True
        sig.urgency_score += 3

    for pattern in AMOUNT_PATTERNS:
        found = pattern.findall(text)
        if found:
            sig.amounts.extend(found)
            sig.urgency_score += 1
    for pattern in DATE_PATTERNS:
        sig.dates.extend(pattern.findall(text))

    sig.priority = _priority(sig.urgency_score)

    if sig.sentiment == "neutral" and _POSITIVE_RE.search(text):
        sig.sentiment = "positive"
    if sig.sentiment == "neutral" and _NEGATIVE_RE.search(text):
        sig.sentiment = "negative"

    internal = _INTERNAL_SENDER_RE.search(sender or "") or not (
        "client" in sig.categories or "contract" in sig.categories
    )
    if internal and not sig.business_type:
        sig.business_type = "internal"
    return sig


def extract_action_items(text: str, limit: int = MAX_ACTION_ITEMS) -> list[str]:
    """Requests and to-dos, one per line, near-duplicates dropped."""
    items: list[str] = []
    for line in re.split(r"[\n\r]+", text or ""):
        line = line.strip()
        if len(line) < 5 or len(line) > 200:
            continue
        for pattern, group in _ACTION_LINE_PATTERNS:
            match = pattern.search(line)
            if not match:
                continue
            item = match.group(group).strip()
            if 10 < len(item) < 200:
                items.append(item)
                break

    unique: list[str] = []
    for item in items:
        low = item.lower()
        if any(low[:30] in u.lower() or u.lower()[:30] in low for u in unique):
            continue
        unique.append(item)
    return unique[:limit]


def signals_for(message: CandidateMessage) -> MessageSignals:
    body = message_text(message.body_text, message.body_html)
    return analyze_message(message.subject, body, message.snippet, message.from_)


def describe_messages(messages: list[CandidateMessage]) -> list[str]:
    """One prompt line per message, plus indented action items."""
    lines: list[str] = []
    for m in messages:
        sig = signals_for(m)
        parts = [f"{m.id}: priority {sig.priority}"]
        if sig.categories:
            parts.append(", ".join(sig.categories))
        if sig.requires_action:
            parts.append("needs action")
        if sig.requires_response:
            parts.append("needs reply")
        parts.append(f"sentiment {sig.sentiment}")
        if sig.amounts:
            parts.append("amounts " + ", ".join(sig.amounts[:3]))
        lines.append("; ".join(parts))
        if sig.requires_action:
            body = message_text(m.body_text, m.body_html)
            lines.extend(f"  - {item}" for item in extract_action_items(body[:ACTION_TEXT_CHARS]))
    return lines


@dataclass
class BatchInsights:
    total: int = 0
    urgent_count: int = 0
    action_required_count: int = 0
    unanswered_client_count: int = 0
    critical: list[str] = field(default_factory=list)
    amounts: list[str] = field(default_factory=list)
    dates: list[str] = field(default_factory=list)
    top_senders: list[tuple[str, int]] = field(default_factory=list)
    categories: dict[str, int] = field(default_factory=dict)


_ANGLE_EMAIL_RE = re.compile(r"<(.+?)>")


def analyze_batch(messages: list[CandidateMessage], top_senders: int = 5) -> BatchInsights:
    """Aggregate counts over a result batch."""
    insights = BatchInsights(total=len(messages))
    senders: Counter[str] = Counter()
    categories: Counter[str] = Counter()

    for m in messages:
        sig = signals_for(m)
        if sig.priority in ("critical", "high"):
            insights.urgent_count += 1
            if sig.priority == "critical":
                insights.critical.append(f"{m.subject} from {m.from_}")
        if sig.requires_action:
            insights.action_required_count += 1
        if "client" in sig.categories and "Re:" not in (m.snippet or ""):
            insights.unanswered_client_count += 1
        insights.amounts.extend(sig.amounts)
        insights.dates.extend(sig.dates)

        angle = _ANGLE_EMAIL_RE.search(m.from_ or "")
        senders[angle.group(1) if angle else (m.from_ or "unknown")] += 1
        categories.update(sig.categories)

    insights.top_senders = senders.most_common(top_senders)
    insights.categories = dict(categories)
    return insights


def render_insights(insights: BatchInsights) -> str:
    if not insights.total:
        return "(none)"
    lines = [
        f"Messages scanned: {insights.total}",
        f"Urgent or high priority: {insights.urgent_count}",
        f"Action required: {insights.action_required_count}",
        f"Unanswered client messages: {insights.unanswered_client_count}",
    ]
    if insights.critical:
        lines.append("Critical: " + "; ".join(insights.critical))
    if insights.categories:
        lines.append("Categories: " + ", ".join(f"{k} {v}" for k, v in insights.categories.items()))
    lines.append("Amounts mentioned: " + (", ".join(insights.amounts[:5]) or "none"))
    lines.append("Dates mentioned: " + (", ".join(insights.dates[:5]) or "none"))
    if insights.top_senders:
        lines.append("Top senders: " + ", ".join(f"{s} ({n})" for s, n in insights.top_senders))
    return "\n".join(lines)


# --- Reply templates ---


@dataclass(frozen=True)
class TemplateHint:
    category: str
    kind: str

    def __str__(self) -> str:
        return f"{self.category}.{self.kind}"


_COMPOSE_VERB_RE = re.compile(r"\b(compose|draft|send|email|write)\b", re.IGNORECASE)

# (trigger, [(refinement, kind)], default kind, category)
_TEMPLATE_RULES: list[tuple[re.Pattern, list[tuple[re.Pattern, str]], str, str]] = [
    (
        re.compile(r"\b(schedule|meeting|call|zoom|sync|discuss)\b", re.IGNORECASE),
        [
            (re.compile(r"\b(reschedule|change|move)\b", re.IGNORECASE), "rescheduleMeeting"),
            (re.compile(r"\b(confirm|confirmation)\b", re.IGNORECASE), "confirmMeeting"),
        ],
        "requestMeeting",
        "meeting",
    ),
    (
        re.compile(r"\b(follow[- ]?up|following up|check in|checking in|reminder)\b", re.IGNORECASE),
        [
            (re.compile(r"\b(urgent|asap|immediately|critical)\b", re.IGNORECASE), "urgent"),
            (re.compile(r"\b(payment|invoice|overdue)\b", re.IGNORECASE), "payment"),
        ],
        "gentle",
        "followUp",
    ),
    (
        re.compile(r"\b(thank|thanks|appreciate)\b", re.IGNORECASE),
        [(re.compile(r"\b(meeting|call)\b", re.IGNORECASE), "meeting")],
        "general",
        "thankYou",
    ),
    (re.compile(r"\b(approve|approved|approval)\b", re.IGNORECASE), [], "approved", "quick"),
    (re.compile(r"\b(decline|reject|cannot|unable)\b", re.IGNORECASE), [], "declined", "quick"),
    (re.compile(r"\b(acknowledge|received|noted)\b", re.IGNORECASE), [], "acknowledged", "quick"),
]

_STATUS_RE = re.compile(r"\b(status|update|progress)\b", re.IGNORECASE)
_PROJECT_RE = re.compile(r"\b(project|client)\b", re.IGNORECASE)
_DELIVERY_RE = re.compile(r"\b(deliver|delivery|complete|finished)\b", re.IGNORECASE)
_PROBLEM_RE = re.compile(r"\b(issue|problem|complaint|resolve)\b", re.IGNORECASE)


def detect_template(text: str) -> TemplateHint | None:
    """Best-fitting reply template for a request, first rule wins."""
    text = text or ""
    for trigger, refinements, default, category in _TEMPLATE_RULES:
        if not trigger.search(text):
            continue
        for pattern, kind in refinements:
            if pattern.search(text):
                return TemplateHint(category, kind)
        return TemplateHint(category, default)

    if _STATUS_RE.search(text) and _PROJECT_RE.search(text):
        return TemplateHint("client", "statusUpdate")
    if _DELIVERY_RE.search(text):
        return TemplateHint("client", "deliveryConfirmation")
    if _PROBLEM_RE.search(text):
        return TemplateHint("client", "problemResolution")
    return None


def template_for_request(question: str) -> TemplateHint | None:
    """Template hint, only for questions that ask to write something."""
    if not _COMPOSE_VERB_RE.search(question or ""):
        return None
    return detect_template(question)
