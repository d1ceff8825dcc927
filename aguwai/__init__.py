"""Aguwai assistant: orchestration loop and durable memory for the job portal."""
