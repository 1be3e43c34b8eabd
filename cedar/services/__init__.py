"""Local services package."""
