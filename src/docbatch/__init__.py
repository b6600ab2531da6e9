"""Batch rendering of markup document trees."""

__all__: list[str] = []
