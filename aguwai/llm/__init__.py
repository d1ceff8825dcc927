"""Language-model provider access."""
