"""Core Layer - pure savings-cycle logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Ledger functions take the clock (`now`) as an argument

Design Decisions:
    - Functional core, imperative shell: services load records, call core, persist
    - repository_protocols.py is the only async surface here (contracts, not code)
"""
