"""Collaborator contracts used by the session controller."""
