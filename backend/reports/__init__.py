"""Hours reconciliation and period analysis reports."""
