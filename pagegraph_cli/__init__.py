"""PageGraph CLI: route, component and usage-graph catalog for React/Next.js projects."""

__version__ = "0.1.0"
