"""Fixed vocabularies (risk levels, tolerances, decision types) shared across the engine."""
