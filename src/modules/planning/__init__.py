"""Daily planning: plan/task store, carry-over, analytics and notification jobs."""
