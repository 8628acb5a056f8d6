"""Team schedules, availability and match-date negotiation."""
