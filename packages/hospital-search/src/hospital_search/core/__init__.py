"""Fetching, models and error taxonomy shared by the search pipeline."""
