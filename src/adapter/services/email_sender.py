import logging
from typing import List, Tuple

from src.app.services.email_sender import IEmailSender

logger = logging.getLogger(__name__)


class LoggingEmailSender(IEmailSender):
    """
    Writes outbound mail to the log instead of delivering it.

    Sent messages are kept on `outbox` so tests can pick up links.
    """

    def __init__(self):
        self.outbox: List[Tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, body: str) -> None:
        self.outbox.append((to, subject, body))
        logger.info(f"Email to {to}: {subject}")
