"""Table-level operations. Each function takes a started ``DBM``."""
