"""Domain layer: checksums, template state model, ports and the reconciliation engine."""
