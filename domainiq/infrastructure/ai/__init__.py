"""AI provider adapters that implement the InferenceProvider port."""
