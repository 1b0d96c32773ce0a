"""Dashboard KPI aggregations."""
