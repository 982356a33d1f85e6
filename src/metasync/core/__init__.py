"""Core synchronization logic: frontmatter extraction and the sync engine."""
