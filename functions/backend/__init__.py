"""
Backend package for the long-running planner service.

This package provides a FastAPI application with database, session and
storage abstractions so the planner can run outside Firebase Functions as
well, with the guardian alert engine as a separate worker process.
"""
