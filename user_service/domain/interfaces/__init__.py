"""Domain interfaces for dependency inversion.

The identity core depends on these abstractions; the infrastructure package
provides the SQLAlchemy repositories and the email notifier.
"""

from .email import INotifier
from .repositories import ITokenRepository, IUserRepository

__all__ = ["INotifier", "ITokenRepository", "IUserRepository"]
