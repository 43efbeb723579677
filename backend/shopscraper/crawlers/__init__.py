"""Browser and page-session implementations."""

from .stealth import StealthBrowser
from .session import PageSession, SessionState

__all__ = ['StealthBrowser', 'PageSession', 'SessionState']
