# MediQuery API Package
"""FastAPI service exposing the query pipeline."""
