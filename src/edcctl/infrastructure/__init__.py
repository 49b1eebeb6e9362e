"""Infrastructure layer: subprocess, cluster tooling, and HTTP adapters."""
