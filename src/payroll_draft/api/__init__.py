"""HTTP surface for draft payroll batches."""
