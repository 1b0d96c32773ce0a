"""Plumbing shared by every feature package: audit trail, errors, filters, pagination."""
