"""Chat completion provider adapters."""
