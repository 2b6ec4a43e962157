"""Cognition Digest: asynchronous digest reports with email and webhook delivery."""
