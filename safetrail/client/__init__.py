"""Client-side orchestration: countdown, alert flow, session recovery."""
