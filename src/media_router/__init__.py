"""WhatsApp command router for a remote media-control backend."""

__version__ = "0.3.0"
