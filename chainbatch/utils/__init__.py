"""Utility helpers: exceptions, masking, logging."""
