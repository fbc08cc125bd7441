"""Recipes, validation polling, piped input and output formatting for an observability CLI."""

__version__ = "0.1.0"

__all__ = [
    "models",
    "recipe",
    "recipes",
    "service_recipe_fetcher",
    "utils",
    "pipe",
    "ux",
    "output",
    "validation",
]