"""
Common Layer - Shared Utilities and Errors
==========================================

Consolidates helpers and the exception hierarchy used across layers
(ingestion, storage, orchestration, cli).

Structure:
    common/
    ├── exceptions.py   # Pipeline exception hierarchy
    └── utils/          # Date and day-key helpers
"""
