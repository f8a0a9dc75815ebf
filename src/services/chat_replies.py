"""Plain-text replies for chat channels."""
import re
from html import escape

from core.config import Settings
from models.bookmark import Priority
from schemas.stats import StatsResponse
from services.ingest_service import MessageResult

TELEGRAM_MAX_LENGTH = 4096
# Room for the ellipsis and the closing tags appended after a cut
TRUNCATION_RESERVE = 64
HTML_TAG = re.compile(r"<(/?)([a-z]+)[^>]*>")
DESCRIPTION_PREVIEW_LENGTH = 100

APOLOGY = "❌ Sorry, something went wrong while processing your message. Please try again later."
NOTHING_CREATED = "❌ No bookmarks were created. Please try again."
UNKNOWN_COMMAND = "❓ Unknown command. Send /help for available commands."
PRIVATE_CHAT_ONLY = (
    "👋 Hi! Please send me a direct message to create bookmarks.\n\n"
    "I only work in private chats for security reasons."
)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _preview(text: str) -> str:
    if len(text) > DESCRIPTION_PREVIEW_LENGTH:
        return text[:DESCRIPTION_PREVIEW_LENGTH] + "..."
    return text


def truncate_for_telegram(text: str) -> str:
    """
    Telegram rejects messages longer than 4096 characters.

    The text is HTML, so the cut never lands inside a tag or an entity, and
    tags left open by the cut are closed again.
    """
    if len(text) <= TELEGRAM_MAX_LENGTH:
        return text

    cut = text[:TELEGRAM_MAX_LENGTH - TRUNCATION_RESERVE]
    partial_tag = cut.rfind("<")
    if partial_tag > cut.rfind(">"):
        cut = cut[:partial_tag]
    # Escaped text only contains "&" at the start of an entity
    partial_entity = cut.rfind("&")
    if partial_entity > cut.rfind(";"):
        cut = cut[:partial_entity]

    open_tags: list[str] = []
    for closing, name in HTML_TAG.findall(cut):
        if not closing:
            open_tags.append(name)
        elif open_tags and open_tags[-1] == name:
            open_tags.pop()
    return cut + "..." + "".join(f"</{name}>" for name in reversed(open_tags))


def telegram_help(settings: Settings) -> str:
    """Full /help text in Telegram HTML."""
    return (
        "🤖 <b>Bookmark Manager Bot</b>\n\n"
        "<b>Usage:</b>\n"
        "• Send any URL → Auto-create smart bookmark\n"
        "• Add context for better tagging\n"
        "• Multiple URLs = multiple bookmarks\n\n"
        "<b>Commands:</b>\n"
        "/help - Show this message\n"
        "/stats - View your bookmark statistics\n"
        "/bookmark &lt;url&gt; [description] - Save with description\n\n"
        "<b>Examples:</b>\n"
        "<code>https://react.dev/learn</code>\n"
        "<code>Important tutorial https://react.dev/learn</code>\n"
        "<code>/bookmark https://github.com/user/repo Check this out</code>\n\n"
        "<b>Quick Links:</b>\n"
        f'📚 <a href="{escape(settings.bookmarks_url)}">View All Bookmarks</a>\n'
        f'📋 <a href="{escape(settings.todo_url)}">Todo List</a>\n\n'
        "💡 <i>Tip: Add context for better tagging!</i>\n"
        'Example: "Read later for work" + [link] = better tags'
    )


def telegram_no_urls() -> str:
    """Short help sent when a Telegram message has no links."""
    return (
        "👋 Hi! Send me any web links and I'll automatically convert them to "
        "organized bookmarks with smart tagging.\n\n"
        "📝 You can also add context for better tagging:\n"
        '<i>Example: "Read later for work" + [link]</i>\n\n'
        "<b>Commands:</b>\n"
        "/help - Show detailed help\n"
        "/stats - View your bookmark statistics\n"
        "/bookmark &lt;url&gt; [description] - Save with description"
    )


def telegram_bookmark_usage() -> str:
    """Reply to /bookmark without arguments."""
    return (
        "📚 <b>Bookmark Command Usage</b>\n\n"
        "<code>/bookmark &lt;url&gt; [description]</code>\n\n"
        "<b>Examples:</b>\n"
        "<code>/bookmark https://github.com/user/repo</code>\n"
        "<code>/bookmark https://react.dev/learn Important tutorial</code>\n\n"
        "💡 <i>Or just send me any URL directly!</i>"
    )


def telegram_stats(stats: StatsResponse, settings: Settings) -> str:
    """Reply to /stats."""
    overview = stats.overview
    return (
        "📊 <b>Your Bookmark Statistics</b>\n\n"
        f"📚 Total Bookmarks: {overview.total_bookmarks}\n"
        f"✅ Reviewed: {overview.reviewed_count}\n"
        f"📋 Todo: {overview.todo_count}\n"
        f"🔥 High Priority: {stats.breakdown.priority.get(Priority.HIGH.value, 0)}\n"
        f"🏷️ Total Tags: {overview.total_tags}\n\n"
        f'<a href="{escape(settings.bookmarks_url)}">View Full Dashboard →</a>'
    )


def telegram_reply(outcome: MessageResult, settings: Settings) -> str:
    """Summarize created bookmarks in Telegram HTML."""
    successful = outcome.successful
    failed = outcome.failed
    lines: list[str] = []

    if successful:
        lines.append(f"✅ <b>Created {_plural(len(successful), 'bookmark')}!</b>\n")
        for index, item in enumerate(successful, start=1):
            bookmark = item.result.bookmark
            prefix = f"<b>{index}.</b> " if len(successful) > 1 else ""
            lines.append(f"{prefix}📚 <b>{escape(bookmark.title or 'Untitled')}</b>")
            if item.result.tag_names:
                lines.append("🏷️ " + " ".join(f"#{escape(tag)}" for tag in item.result.tag_names))
            if bookmark.priority == Priority.HIGH.value:
                lines.append("🔥 High Priority")
            elif bookmark.priority == Priority.LOW.value:
                lines.append("📅 Low Priority")
            if bookmark.description and bookmark.description != bookmark.title:
                lines.append(f"📝 {escape(_preview(bookmark.description))}")
            lines.append(f"🔗 {escape(bookmark.url)}\n")
        lines.append("📱 <b>Quick Links:</b>")
        lines.append(f'📚 <a href="{escape(settings.bookmarks_url)}">View All Bookmarks</a>')
        lines.append(f'📋 <a href="{escape(settings.todo_url)}">Todo List</a>\n')

    if failed:
        lines.append(f"❌ Failed to process {_plural(len(failed), 'link')}\n")

    if successful:
        lines.append("💡 <i>Tip: Add context for better tagging!</i>")
        lines.append('Example: "Important work docs" + [link]')

    if not lines:
        return NOTHING_CREATED
    return truncate_for_telegram("\n".join(lines).rstrip())


def whatsapp_no_urls() -> str:
    """Help sent when a WhatsApp message has no links."""
    return (
        "👋 Hi! Send me any web links and I'll automatically convert them to "
        "organized bookmarks with smart tagging and descriptions.\n\n"
        "📝 You can also add a note with your link for better context!\n\n"
        'Example: "Read this later for work" + [your link]'
    )


def whatsapp_reply(outcome: MessageResult, settings: Settings) -> str:
    """Summarize created bookmarks using WhatsApp *bold* markup."""
    successful = outcome.successful
    failed = outcome.failed
    if not successful and not failed:
        return "❌ No links could be processed. Please check your URLs and try again."

    lines: list[str] = []
    if successful:
        lines.append(f"✅ Successfully saved {_plural(len(successful), 'bookmark')}:\n")
        for item in successful:
            bookmark = item.result.bookmark
            lines.append(f"📚 *{bookmark.title}*")
            lines.append(f"🏷️ Tags: {', '.join(item.result.tag_names) or 'none'}")
            if bookmark.priority == Priority.HIGH.value:
                lines.append("🔥 Priority: HIGH")
            lines.append(f"🔗 {bookmark.url}\n")
        lines.append("📝 All bookmarks added to your todo list for review!")
        lines.append(f"🌐 View them at: {settings.todo_url}\n")

    if failed:
        lines.append(f"❌ Failed to process {_plural(len(failed), 'link')}:")
        lines.extend(f"• {item.url} - Failed to process this link" for item in failed)

    lines.append("\n💡 Pro tip: Add a note with your link for better categorization!")
    lines.append('Example: "Important tutorial for work project" + [your link]')
    return "\n".join(lines)
