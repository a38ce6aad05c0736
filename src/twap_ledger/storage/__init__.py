"""Storage layer: CSV files, preview artifacts and Postgres repositories."""
