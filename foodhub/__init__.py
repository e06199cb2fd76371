"""foodhub: food-delivery API proxy with realtime restaurant comments."""

__version__ = "0.1.0"
