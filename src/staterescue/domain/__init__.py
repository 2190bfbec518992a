"""Pure domain layer: model, ports and the reconciliation core."""
