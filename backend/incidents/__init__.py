"""Incident types and the incident review workflow."""
