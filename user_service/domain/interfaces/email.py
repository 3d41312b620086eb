"""Notifier interface used by the identity core to deliver emails.

The core composes the content that matters (the confirmation code, the reset
link) and hands it to the notifier; how the message is rendered and delivered
is an infrastructure concern.
"""

from abc import ABC, abstractmethod


class INotifier(ABC):
    """Delivers confirmation and password reset emails.

    Calls are awaited to completion. Any failure must be raised, not swallowed:
    the identity service decides how a failed delivery affects the operation.
    """

    @abstractmethod
    async def send_confirmation_email(
        self,
        username: str,
        email: str,
        code: str,
        language: str = "en",
    ) -> None:
        """Send the email-confirmation message carrying ``code``.

        Args:
            username: Recipient's username, used for the greeting
            email: Recipient's address
            code: Confirmation code to embed
            language: Language code for email localization
        """
        raise NotImplementedError

    @abstractmethod
    async def send_reset_email(
        self,
        username: str,
        email: str,
        reset_link: str,
        language: str = "en",
    ) -> None:
        """Send the password reset message carrying ``reset_link``.

        Args:
            username: Recipient's username, used for the greeting
            email: Recipient's address
            reset_link: Fully composed reset URL
            language: Language code for email localization
        """
        raise NotImplementedError
