"""Run flutter tests and turn the JSON reporter stream into a report."""
