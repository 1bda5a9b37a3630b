"""Cross-implementation timing of quantum master-equation and trajectory solvers."""
