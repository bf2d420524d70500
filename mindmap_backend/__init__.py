"""Mind Map Tool backend: state controller, persistence and the HTTP/WebSocket API."""
