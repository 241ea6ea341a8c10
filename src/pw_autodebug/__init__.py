"""UI element coverage tracking and AI-assisted failure triage for Playwright."""

__version__ = "0.4.0"
