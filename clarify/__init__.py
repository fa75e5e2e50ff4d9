"""Clarify -- resumable clarifying-question dialogs with a generation engine."""
