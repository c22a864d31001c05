"""Segmented line-transect editing engine."""
