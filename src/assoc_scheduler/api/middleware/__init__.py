"""API middleware package.

Cross-cutting concerns (error mapping) live here so routers stay thin.
"""
