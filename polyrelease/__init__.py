"""Label-driven versioning and release cleanup for polyglot repositories."""
