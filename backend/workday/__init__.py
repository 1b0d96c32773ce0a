"""Daily workdays and clock entries."""
