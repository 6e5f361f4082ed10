"""Gateway service: HTTP and WebSocket front door for the chat relay."""
