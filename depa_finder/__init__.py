"""depa_finder: swipe through curated rental listings and keep the ones you like."""

__version__ = "0.1.0"
