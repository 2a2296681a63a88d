"""Fleet route planner: order consolidation and fleet allocation backend."""
