"""HTTP API for the bookmarks service."""
