"""HTTP glue for the extraction engine."""
