"""mergebot: GitLab integration layer with a resilient request executor and a
single-flight job queue."""

__version__ = "0.1.0"
