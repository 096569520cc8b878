"""app/: configuration, logging and error types for the analysis pipeline."""
