"""Pure scheduling rules: time math, conflict detection, publish visibility."""
