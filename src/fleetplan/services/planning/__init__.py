"""Order consolidation, batching, fleet allocation and trip hydration."""
