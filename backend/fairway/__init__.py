"""Fairway Chat backend package."""
