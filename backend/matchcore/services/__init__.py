"""Host-side services: bracket generation, advancement and persistence."""
