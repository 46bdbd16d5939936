"""Report rendering: check output, annotations and coverage tables."""
