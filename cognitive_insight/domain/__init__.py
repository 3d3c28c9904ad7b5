"""Domain entities for the interview session."""
