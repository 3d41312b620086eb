from .email_service import EmailNotifier

__all__ = ["EmailNotifier"]
