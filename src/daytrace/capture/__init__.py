"""Capture path: frames, change detection, redaction, extraction, persistence."""
