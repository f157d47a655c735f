"""Serverless entrypoints."""
