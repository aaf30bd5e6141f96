"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging outbound messages for development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints the rendered message, including
    any verification link or code it contains.
    """

    def send(self, recipient: str, subject: str, body: str) -> None:
        """
        Log the message to console (simulates email delivery).

        The message is logged at INFO level to be visible in container logs.

        Args:
            recipient: Recipient email address (normalized by domain layer)
            subject: Message subject
            body: Rendered HTML body
        """
        logger.info("[EMAIL] To: %s Subject: %s\n%s", recipient, subject, body)
