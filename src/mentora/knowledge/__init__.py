"""Knowledge module - current-events provider for news questions."""
