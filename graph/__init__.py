"""graph/: shared models and the LangGraph workflow behind perform_analysis."""
