"""metasync: publish Markdown frontmatter as object-storage metadata."""

__version__ = "0.1.0"
