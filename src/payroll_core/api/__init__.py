"""HTTP API for payroll simulations and GL previews."""
