"""Pipeline services: ledger, generation, deployment, publishing and domains."""
