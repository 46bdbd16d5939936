"""Run Jest and report its results to GitHub."""
