"""Per-user session orchestration."""
