"""HTTP routes for the mail relay."""
