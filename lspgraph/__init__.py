"""LSP graph broker: cached code analysis, query views, and knowledge-graph sync."""

__version__ = "0.1.0"
