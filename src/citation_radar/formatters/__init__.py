"""Output formatters for pipeline run summaries."""
