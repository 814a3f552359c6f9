"""Domain models: analysis results and queue bookkeeping structures."""
