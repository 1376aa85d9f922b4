"""Command-line surface for cloud-report."""
