"""Services - workflows that load records, apply core rules, commit, then fan out."""
