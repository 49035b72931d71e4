"""FastAPI server for the visual agent builder."""
