"""Anonymous identity for browser sessions."""
