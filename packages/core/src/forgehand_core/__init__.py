"""Branch lifecycle and tracking-comment reconciliation for forge-triggered assistant runs."""
