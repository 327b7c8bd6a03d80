from __future__ import annotations

"""
Delivery channels for the narrative email draft.

Senders accept a NarrativeDraft (subject + plain-text body) and create a draft
somewhere a person can review and send it. Implementations are selected by
configuration through `build_draft_sender`, so deployments without a mail
client can disable the channel while the worksheet output keeps working.
"""

import logging
import re
from email.message import EmailMessage
from email.utils import formatdate
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from shared.observability.privacy import fingerprint
from shared.report_settings import DraftSettings

from errors import DraftDeliveryError
from models.ledger import NarrativeDraft

logger = logging.getLogger(__name__)


@runtime_checkable
class DraftSender(Protocol):
    """
    Interface for swappable draft channels.

    Implementations provide a descriptive `name` and a `send` method that
    returns where the draft was created (or None when nothing was created).
    Failures are raised as DraftDeliveryError.
    """

    name: str

    def send(self, draft: NarrativeDraft) -> Optional[str]:
        ...


class EmlDraftSender:
    """
    Writes the draft as an unsent RFC 5322 message (`.eml`) that mail clients open for editing.

    One file per subject, so rerunning the same month replaces the previous draft.
    """

    name = "eml"

    def __init__(
        self,
        draft_dir: str | Path,
        recipient: Optional[str] = None,
        from_address: Optional[str] = None,
    ) -> None:
        self._draft_dir = Path(draft_dir)
        self._recipient = recipient
        self._from_address = from_address

    def send(self, draft: NarrativeDraft) -> Optional[str]:
        target = self._draft_dir / f"{_slugify(draft.subject)}.eml"
        try:
            message = self._build_message(draft)
            self._draft_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(message.as_bytes())
        except (OSError, ValueError) as exc:
            raise DraftDeliveryError(f"Could not create email draft in {self._draft_dir}: {exc}") from exc

        _log_draft_created(self.name, draft, str(target))
        return str(target)

    def _build_message(self, draft: NarrativeDraft) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = draft.subject
        if self._recipient:
            message["To"] = self._recipient
        if self._from_address:
            message["From"] = self._from_address
        message["Date"] = formatdate(localtime=True)
        # Outlook and Thunderbird open X-Unsent messages in compose mode.
        message["X-Unsent"] = "1"
        message.set_content(draft.body)
        return message


class DisabledDraftSender:
    """Channel used when draft creation is switched off; the report run still succeeds."""

    name = "disabled"

    def send(self, draft: NarrativeDraft) -> Optional[str]:
        logger.info({"event": "draft_skipped", "sender": self.name, "subject": draft.subject})
        return None


def build_draft_sender(settings: Optional[DraftSettings]) -> DraftSender:
    """
    Factory that instantiates the configured draft sender implementation.
    """

    if settings is None:
        return DisabledDraftSender()

    normalized = (settings.sender_name or "").strip().lower()
    if normalized == "eml":
        return EmlDraftSender(
            settings.draft_dir,
            recipient=settings.recipient,
            from_address=settings.from_address,
        )
    if normalized == "disabled":
        return DisabledDraftSender()

    raise ValueError(f"Unsupported draft sender '{settings.sender_name}'")


def _slugify(subject: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", subject.lower()).strip("-")
    return slug or "budget-report"


def _log_draft_created(sender_name: str, draft: NarrativeDraft, location: str) -> None:
    logger.info(
        {
            "event": "draft_created",
            "sender": sender_name,
            "subject": draft.subject,
            "body_fingerprint": fingerprint(draft.body),
            "location": location,
        }
    )
