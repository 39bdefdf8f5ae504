"""Iridium: tool-augmented AI chat service for a SaaS dashboard."""

__version__ = "0.1.0"
