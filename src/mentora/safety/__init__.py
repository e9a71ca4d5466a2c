"""Safety module - intent detection ahead of the AI call."""
