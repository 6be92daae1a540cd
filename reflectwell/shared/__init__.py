"""Shared models and utilities for Reflectwell services."""
