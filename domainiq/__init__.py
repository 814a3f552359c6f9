"""DomainIQ: AI-assisted domain name scoring behind a rate-limited inference queue."""

__version__ = "0.3.0"
