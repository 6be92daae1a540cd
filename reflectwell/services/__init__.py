"""Reflectwell services.

- crisis_detection: scores entries for crisis indicators before any
  downstream feature sees them
- All services use hash_pii() for subject identifiers in logs
"""
