"""Database models and session management."""
