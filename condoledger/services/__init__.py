"""Cross-cutting services built on the accounting domain."""
