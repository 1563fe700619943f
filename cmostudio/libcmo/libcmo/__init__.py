"""CMO reader/rewriter library."""
