"""Two-stage LLM insight pipeline for exported conversation archives."""

__version__ = "0.1.0"
