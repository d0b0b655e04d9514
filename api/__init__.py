"""api/ -- FastAPI app assembly, JSON models, and JSON routes."""
