"""WebDAV gateway over a Microsoft Graph drive."""

__version__ = "0.1.0"
