"""
Orchestration layer: multi-step runs built from the ingestion and storage
layers.
"""
