"""
Heuristic enrichment of scraped page metadata.

Every channel that turns a URL into a bookmark runs the same deterministic
pipeline: the tagger, the priority classifier, and the title/description
enhancer. There is no model involved; all decisions are keyword and domain
pattern matches against the tables below.
"""
import logging
from dataclasses import dataclass
from enum import StrEnum

from models.bookmark import Priority
from services.url_scraper import PageMetadata

logger = logging.getLogger(__name__)

MAX_TAGS = 6

# Ordered; only the first matching pattern contributes tags.
DOMAIN_TAGS: list[tuple[str, list[str]]] = [
    ("github.com", ["code", "development", "opensource"]),
    ("stackoverflow.com", ["programming", "question", "help"]),
    ("medium.com", ["article", "blog", "reading"]),
    ("dev.to", ["development", "blog", "community"]),
    ("youtube.com", ["video", "tutorial", "media"]),
    ("twitter.com", ["social", "tweet", "news"]),
    ("reddit.com", ["discussion", "community", "social"]),
    ("docs.google.com", ["document", "collaboration"]),
    ("notion.so", ["productivity", "notes"]),
    ("figma.com", ["design", "ui", "collaboration"]),
    ("vercel.com", ["deployment", "hosting", "frontend"]),
    ("netlify.com", ["deployment", "hosting", "jamstack"]),
]

# Every keyword found in the content contributes its tags.
CONTENT_TAGS: dict[str, list[str]] = {
    "react": ["react", "frontend", "javascript"],
    "vue": ["vue", "frontend", "javascript"],
    "angular": ["angular", "frontend", "typescript"],
    "node": ["nodejs", "backend", "javascript"],
    "python": ["python", "programming"],
    "javascript": ["javascript", "programming"],
    "typescript": ["typescript", "programming"],
    "css": ["css", "styling", "frontend"],
    "html": ["html", "frontend", "markup"],
    "api": ["api", "backend", "integration"],
    "database": ["database", "data", "backend"],
    "tutorial": ["tutorial", "learning"],
    "guide": ["guide", "documentation"],
    "documentation": ["docs", "reference"],
    "news": ["news", "updates"],
    "tool": ["tools", "productivity"],
    "design": ["design", "ui", "ux"],
}

URGENCY_TERMS = ("urgent", "important", "asap")
DEFERRAL_TERMS = ("later", "someday")
READ_LATER_TERMS = ("read later", "todo")
WORK_TERMS = ("work", "project")
PERSONAL_TERMS = ("personal",)
LEARNING_TERMS = ("tutorial", "guide", "documentation")

HIGH_PRIORITY_DOMAINS = ("docs.", "documentation", "github.com", "stackoverflow.com")
MEDIUM_PRIORITY_DOMAINS = ("medium.com", "dev.to", "blog.")

# Used for the `insights` block returned alongside created bookmarks
DOMAIN_CATEGORIES: list[tuple[str, tuple[str, ...]]] = [
    ("social", ("twitter.com", "reddit.com", "linkedin.com", "facebook.com")),
    ("development", ("github.com", "gitlab.com", "bitbucket.org", "stackoverflow.com")),
    ("documentation", ("docs.", "documentation", "wiki")),
    ("media", ("youtube.com", "vimeo.com", "twitch.tv")),
    ("news", ("news.", "techcrunch.com", "ycombinator.com", "theverge.com")),
    ("blog", ("medium.com", "dev.to", "blog.", "substack.com")),
]

# Any dash separates, including one inside a hyphenated word
TITLE_SEPARATORS = ("|", "-", "•")


class IngestSource(StrEnum):
    """Channel a bookmark arrived through."""

    MANUAL = "manual"
    TELEGRAM = "telegram"
    WHATSAPP = "whatsapp"


SOURCE_LABELS = {
    IngestSource.MANUAL: "AI assistant",
    IngestSource.TELEGRAM: "Telegram",
    IngestSource.WHATSAPP: "WhatsApp",
}


def _contains_any(text: str, terms: tuple[str, ...]) -> bool:
    return any(term in text for term in terms)


def base_domain_label(domain: str) -> str:
    """First DNS label of a domain ('github' for 'github.com')."""
    return domain.split(".")[0]


def generate_tags(domain: str, content: str, user_message: str | None = None) -> list[str]:
    """
    Derive up to six tags from the domain, page content and user note.

    Args:
        domain: Hostname without 'www.'.
        content: Title and description joined by a space.
        user_message: Free-form note sent with the URL, if any.

    Returns:
        Lowercase tags, de-duplicated in first-seen order.
    """
    domain = domain.lower()
    content = content.lower()
    tags: list[str] = []

    for pattern, pattern_tags in DOMAIN_TAGS:
        if pattern.removesuffix(".com") in domain:
            tags.extend(pattern_tags)
            break

    for keyword, keyword_tags in CONTENT_TAGS.items():
        if keyword in content:
            tags.extend(keyword_tags)

    if user_message:
        message = user_message.lower()
        if _contains_any(message, URGENCY_TERMS):
            tags.append("important")
        if _contains_any(message, READ_LATER_TERMS):
            tags.append("read-later")
        if _contains_any(message, WORK_TERMS):
            tags.append("work")
        if _contains_any(message, PERSONAL_TERMS):
            tags.append("personal")

    label = base_domain_label(domain)
    if label and label != "www":
        tags.append(label)

    return list(dict.fromkeys(tag.lower() for tag in tags))[:MAX_TAGS]


def determine_priority(domain: str, content: str, user_message: str | None = None) -> Priority:
    """
    Classify a bookmark's review priority.

    Rules are evaluated in order and the first match wins. Signals from the
    user's note always beat domain and content signals, and there is no
    domain rule that yields LOW.
    """
    domain = domain.lower()
    content = content.lower()

    if user_message:
        message = user_message.lower()
        if _contains_any(message, URGENCY_TERMS):
            return Priority.HIGH
        if _contains_any(message, DEFERRAL_TERMS):
            return Priority.LOW

    if _contains_any(domain, HIGH_PRIORITY_DOMAINS):
        return Priority.HIGH
    if _contains_any(domain, MEDIUM_PRIORITY_DOMAINS):
        return Priority.MEDIUM
    if _contains_any(content, LEARNING_TERMS):
        return Priority.HIGH
    return Priority.MEDIUM


def enhance_title(title: str, domain: str) -> str:
    """
    Clean a scraped page title.

    A missing title, or one that is just the domain, becomes
    "Content from <domain>". Otherwise a trailing site-name suffix after the
    last "|", "-" or "•" separator is removed and the first character
    capitalized. If nothing would be left, the original title is returned.
    """
    if not title or title == domain:
        return f"Content from {domain}"

    cut = max(title.rfind(separator) for separator in TITLE_SEPARATORS)
    enhanced = title[:cut].strip() if cut >= 0 else title.strip()
    if not enhanced:
        return title
    return enhanced[0].upper() + enhanced[1:]


def enhance_description(
    description: str,
    domain: str,
    user_message: str | None = None,
    source: IngestSource = IngestSource.MANUAL,
) -> str:
    """Compose a description from the user's note, the page, or the source."""
    if user_message and user_message.strip():
        note = user_message.strip()
        return f"{note}\n\n{description}" if description else note
    if description:
        return description
    return f"Bookmark saved from {domain} via {SOURCE_LABELS[IngestSource(source)]}"


def analyze_domain(domain: str) -> str:
    """Broad category of a site, 'general' when no pattern matches."""
    for category, patterns in DOMAIN_CATEGORIES:
        if _contains_any(domain, patterns):
            return category
    return "general"


def determine_content_type(content: str, domain: str) -> str:
    """Guess what kind of page this is from its text."""
    if _contains_any(content, ("tutorial", "guide", "how to")):
        return "tutorial"
    if _contains_any(content, ("news", "update", "release")):
        return "news"
    if _contains_any(content, ("documentation", "docs", "reference")):
        return "documentation"
    if "github.com" in domain:
        return "code"
    return "article"


def analyze_user_message(message: str) -> dict[str, str]:
    """Summarize the intent signals in a user's note."""
    text = message.lower()
    if "work" in text:
        category = "work"
    elif "personal" in text:
        category = "personal"
    else:
        category = "general"
    if "read later" in text:
        action = "read-later"
    elif "review" in text:
        action = "review"
    else:
        action = "save"
    return {
        "urgency": "high" if _contains_any(text, ("urgent", "asap")) else "normal",
        "category": category,
        "action": action,
    }


@dataclass
class Enrichment:
    """
    Result of enriching one page.

    When any heuristic raised, `degraded` is set, `error` names the failure,
    and the fields hold the minimal fallback values instead.
    """

    title: str
    description: str
    priority: Priority
    tags: list[str]
    insights: dict | None = None
    degraded: bool = False
    error: str | None = None


def fallback_enrichment(metadata: PageMetadata, error: str | None = None) -> Enrichment:
    """Minimal enrichment used when the heuristics fail."""
    return Enrichment(
        title=metadata.title or metadata.domain,
        description=f"Bookmark saved from {metadata.domain}",
        priority=Priority.MEDIUM,
        tags=[base_domain_label(metadata.domain).lower()],
        degraded=True,
        error=error,
    )


def enrich(
    metadata: PageMetadata,
    user_message: str | None = None,
    source: IngestSource = IngestSource.MANUAL,
) -> Enrichment:
    """
    Run the tagger, classifier and enhancer over extracted metadata.

    Never raises. Bookmark creation must not fail because enrichment did, so
    any exception is logged and the fallback enrichment returned.
    """
    try:
        domain = metadata.domain.lower()
        content = f"{metadata.title} {metadata.description}".lower()
        insights = {
            "domain_analysis": analyze_domain(domain),
            "content_type": determine_content_type(content, domain),
            "user_context": analyze_user_message(user_message) if user_message else None,
        }
        return Enrichment(
            title=enhance_title(metadata.title, metadata.domain),
            description=enhance_description(
                metadata.description, metadata.domain, user_message, source,
            ),
            priority=determine_priority(domain, content, user_message),
            tags=generate_tags(domain, content, user_message),
            insights=insights,
        )
    except Exception as e:
        logger.exception("Enrichment failed for %s", metadata.url)
        return fallback_enrichment(metadata, str(e))
