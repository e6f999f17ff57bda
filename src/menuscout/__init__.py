"""menuscout - restaurant menu extraction from a food-delivery site."""

__version__ = "0.1.0"
