"""Japanese vocabulary flashcards generated by an LLM and kept in SQLite."""

__version__ = "0.1.0"
