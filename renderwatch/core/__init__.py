"""Monitoring core — classifier, job machine, transcript, and controller."""
