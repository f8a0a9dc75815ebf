"""Inbound payloads for chat webhooks."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TelegramUser(BaseModel):
    """Sender of a Telegram message."""

    id: int
    is_bot: bool = False
    first_name: str = ""
    username: str | None = None


class TelegramChat(BaseModel):
    """Chat a Telegram message was posted in."""

    id: int
    type: str  # private | group | supergroup | channel


class TelegramMessage(BaseModel):
    """The subset of a Telegram message the bot uses."""

    model_config = ConfigDict(populate_by_name=True)

    message_id: int
    from_user: TelegramUser | None = Field(default=None, alias="from")
    chat: TelegramChat
    date: int = 0
    text: str | None = None

    @property
    def is_private(self) -> bool:
        return self.chat.type == "private"

    @property
    def is_command(self) -> bool:
        return (self.text or "").startswith("/")


class TelegramUpdate(BaseModel):
    """Update delivered by Telegram to the bot's webhook."""

    update_id: int
    message: TelegramMessage | None = None
    edited_message: TelegramMessage | None = None

    def incoming_message(self) -> TelegramMessage | None:
        """The text message to act on, or None if the update has none."""
        message = self.message or self.edited_message
        if message is None or not message.text or message.from_user is None:
            return None
        return message


class TelegramSendMessage(BaseModel):
    """
    Reply returned in the webhook response body.

    Telegram executes a method given in the webhook response, so the bot can
    answer without making its own outbound API call.
    """

    method: str = "sendMessage"
    chat_id: int
    text: str
    parse_mode: str = "HTML"
    disable_web_page_preview: bool = False


class WhatsAppMessage(BaseModel):
    """A text message normalized from any supported WhatsApp payload shape."""

    sender: str
    body: str
    message_id: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "WhatsAppMessage | None":
        """
        Extract the message from a provider payload.

        Supported shapes, tried in order:
        - Business API: entry[0].changes[0].value.messages[0]
        - bot relay: {"from": ..., "message": ...}
        - generic: {"from": ..., "body": ...}
        """
        try:
            msg = payload["entry"][0]["changes"][0]["value"]["messages"][0]
        except (KeyError, IndexError, TypeError):
            msg = None
        if isinstance(msg, dict):
            text = msg.get("text")
            body = text.get("body") if isinstance(text, dict) else None
            return cls(
                sender=str(msg.get("from", "")),
                body=body or msg.get("body") or "",
                message_id=msg.get("id"),
            )

        sender = payload.get("from")
        if sender and payload.get("message"):
            return cls(sender=str(sender), body=str(payload["message"]), message_id=payload.get("id"))
        if sender and payload.get("body"):
            return cls(
                sender=str(sender),
                body=str(payload["body"]),
                message_id=payload.get("messageId"),
            )
        return None


class WhatsAppReply(BaseModel):
    """Text for the provider to send back to the sender."""

    to: str
    message: str


class WhatsAppWebhookResponse(BaseModel):
    """Schema for the WhatsApp webhook response."""

    status: str  # no_message | no_urls | processed | error
    processed_urls: int = 0
    reply: WhatsAppReply | None = None
