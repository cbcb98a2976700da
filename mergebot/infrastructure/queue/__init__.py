"""In-memory work sequencing.

Contains the single-flight job queue used to serialize per-merge-request
reconciliation work.
"""
