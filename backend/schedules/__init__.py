"""Per-date work schedules: calendar grid, selection state machine, bulk mutations."""
