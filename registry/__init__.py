"""HTTP registry hosting one trust anchor per identity."""
