"""Bot Framework handlers for the Teams relay bot."""
