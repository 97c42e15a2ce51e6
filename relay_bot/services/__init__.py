"""Services used by the Teams relay bot."""
