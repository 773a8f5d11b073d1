"""Infrastructure - database sessions, record store, fanout, locks and logging."""
